from fastapi import APIRouter, Depends, Request, status

from app.api.dependencies import get_use_cases
from app.api.schemas.payments import WebhookAck

router = APIRouter()


@router.post(
    "/webhooks/stripe",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def stripe_webhook(
    request: Request,
    use_cases=Depends(get_use_cases),
) -> WebhookAck:
    # Raw bytes are required for signature verification
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    outcome = await use_cases["handle_webhook"].execute(raw_body=raw_body, signature=signature)
    return WebhookAck(received=outcome.received, duplicate=True if outcome.duplicate else None)
