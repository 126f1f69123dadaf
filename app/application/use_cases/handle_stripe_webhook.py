import logging
from dataclasses import dataclass

from pydantic import ValidationError

from app.api.schemas.payments import StripeWebhookEnvelope
from app.application.interfaces.event_deduplicator import EventDeduplicator
from app.application.interfaces.stripe_gateway import StripeGateway
from app.application.use_cases.stripe_event_handlers import StripeEventHandlers
from app.domain.entities.processor_event import parse_processor_event
from app.domain.errors import InvalidWebhookSignatureError


@dataclass(frozen=True)
class WebhookOutcome:
    received: bool = True
    duplicate: bool = False


class HandleStripeWebhookUseCase:
    def __init__(
        self,
        stripe_gateway: StripeGateway,
        event_handlers: StripeEventHandlers,
        deduplicator: EventDeduplicator,
        stripe_webhook_secret: str | None,
    ) -> None:
        self._stripe_gateway = stripe_gateway
        self._event_handlers = event_handlers
        self._deduplicator = deduplicator
        self._stripe_webhook_secret = stripe_webhook_secret
        self._logger = logging.getLogger(__name__)

    async def execute(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        if not self._stripe_webhook_secret:
            self._logger.error("Stripe webhook secret is not configured, rejecting event")
            raise InvalidWebhookSignatureError("Webhook secret not configured")
        if not signature:
            raise InvalidWebhookSignatureError("Missing Stripe-Signature header")

        envelope = await self._stripe_gateway.parse_webhook_event(
            payload=raw_body,
            signature_header=signature,
            webhook_secret=self._stripe_webhook_secret,
        )
        try:
            envelope_model = StripeWebhookEnvelope.model_validate(envelope)
        except ValidationError as exc:
            raise InvalidWebhookSignatureError("Invalid event payload") from exc
        event = parse_processor_event(envelope_model.model_dump())

        if event.id and await self._deduplicator.seen(event.id):
            self._logger.info(
                "Duplicate webhook event ignored",
                extra={"event_id": event.id, "event_type": event.event_type},
            )
            return WebhookOutcome(duplicate=True)

        # Handler errors propagate so the sender retries; the id is marked only on success
        await self._event_handlers.dispatch(event)
        if event.id:
            await self._deduplicator.mark(event.id)

        self._logger.info(
            "Stripe webhook processed",
            extra={"event_id": event.id, "event_type": event.event_type, "event_kind": event.kind.value},
        )
        return WebhookOutcome()
