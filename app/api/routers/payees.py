from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import get_use_cases
from app.api.deps import Requester, get_requester
from app.api.schemas.payments import ApiResponse, PayeePaymentStatsResponse, PayeeTransactionView

router = APIRouter()


@router.get(
    "/payees/me/payment-stats",
    response_model=ApiResponse[PayeePaymentStatsResponse],
    status_code=status.HTTP_200_OK,
)
async def get_payment_stats(
    requester: Requester = Depends(get_requester),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[PayeePaymentStatsResponse]:
    stats = await use_cases["payee_stats"].execute(payee_id=requester.id)
    return ApiResponse(data=PayeePaymentStatsResponse.from_stats(stats))


@router.get(
    "/payees/me/transactions",
    response_model=ApiResponse[list[PayeeTransactionView]],
    status_code=status.HTTP_200_OK,
)
async def list_transactions(
    limit: int | None = Query(default=None),
    requester: Requester = Depends(get_requester),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[list[PayeeTransactionView]]:
    transactions = await use_cases["payee_transactions"].execute(payee_id=requester.id, limit=limit)
    return ApiResponse(data=[PayeeTransactionView.from_transaction(tx) for tx in transactions])
