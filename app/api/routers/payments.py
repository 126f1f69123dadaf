from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_use_cases
from app.api.deps import Requester, get_requester, require_admin
from app.api.schemas.payments import (
    ApiResponse,
    CaptureResponse,
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    PaymentIntentResponse,
    PaymentLedgerView,
    RefundRequest,
    RefundResponse,
)

router = APIRouter()


@router.post(
    "/bookings/{booking_id}/payment-intent",
    response_model=ApiResponse[PaymentIntentResponse],
    status_code=status.HTTP_200_OK,
)
async def create_payment_intent(
    booking_id: str,
    requester: Requester = Depends(get_requester),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[PaymentIntentResponse]:
    outcome = await use_cases["create_payment_intent"].execute(booking_id=booking_id, user_id=requester.id)
    return ApiResponse(data=PaymentIntentResponse.from_outcome(outcome))


@router.post(
    "/payments/confirm",
    response_model=ApiResponse[ConfirmPaymentResponse],
    status_code=status.HTTP_200_OK,
)
async def confirm_payment(
    payload: ConfirmPaymentRequest,
    requester: Requester = Depends(get_requester),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[ConfirmPaymentResponse]:
    outcome = await use_cases["confirm_payment"].execute(
        booking_id=payload.booking_id,
        payment_intent_id=payload.payment_intent_id,
        user_id=requester.id,
    )
    return ApiResponse(data=ConfirmPaymentResponse.from_outcome(outcome))


@router.post(
    "/bookings/{booking_id}/capture",
    response_model=ApiResponse[CaptureResponse],
    status_code=status.HTTP_200_OK,
)
async def capture_payment(
    booking_id: str,
    admin: Requester = Depends(require_admin),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[CaptureResponse]:
    outcome = await use_cases["capture_payment"].execute(booking_id=booking_id)
    return ApiResponse(data=CaptureResponse.from_outcome(outcome))


@router.post(
    "/payments/refund",
    response_model=ApiResponse[RefundResponse],
    status_code=status.HTTP_200_OK,
)
async def refund_payment(
    payload: RefundRequest,
    requester: Requester = Depends(get_requester),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[RefundResponse]:
    outcome = await use_cases["refund_payment"].execute(
        booking_id=payload.booking_id,
        requester_id=requester.id,
        requester_role=requester.role,
        reason=payload.reason,
        amount=payload.amount,
    )
    return ApiResponse(data=RefundResponse.from_outcome(outcome))


@router.get(
    "/bookings/{booking_id}/payment",
    response_model=ApiResponse[PaymentLedgerView],
    status_code=status.HTTP_200_OK,
)
async def get_booking_payment(
    booking_id: str,
    requester: Requester = Depends(get_requester),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[PaymentLedgerView]:
    record = await use_cases["get_booking_payment"].execute(
        booking_id=booking_id,
        requester_id=requester.id,
        requester_role=requester.role,
    )
    return ApiResponse(data=PaymentLedgerView.from_record(record))
