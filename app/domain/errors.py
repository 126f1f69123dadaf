"""Excepciones de dominio para el ciclo de vida de pagos en escrow."""


class DomainError(Exception):
    """Clase base para todos los errores de dominio."""

    http_status: int = 400

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# === Errores de autorización ===


class UnauthorizedError(DomainError):
    """El solicitante no puede operar sobre la reserva."""

    http_status = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, code="UNAUTHORIZED")


class AuthenticationRequiredError(UnauthorizedError):
    """No llegó identidad del solicitante desde la capa de autenticación."""

    http_status = 401

    def __init__(self):
        super().__init__(message="Authentication required")


# === Errores de búsqueda ===


class NotFoundError(DomainError):
    http_status = 404


class BookingNotFoundError(NotFoundError):
    """La reserva no existe."""

    def __init__(self, booking_id: str):
        super().__init__(message=f"Booking not found: {booking_id}", code="BOOKING_NOT_FOUND")
        self.booking_id = booking_id


class PayeeNotFoundError(NotFoundError):
    """La reserva no tiene un profesional asignado (ni directo ni por proyecto)."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=f"No payee assigned to booking {booking_id}: {reason}",
            code="PAYEE_NOT_FOUND",
        )
        self.booking_id = booking_id
        self.reason = reason


class NoPaymentError(DomainError):
    """La reserva no tiene un pago (intent) registrado."""

    def __init__(self, booking_id: str, operation: str):
        super().__init__(
            message=f"No payment to {operation} for booking {booking_id}",
            code="NO_PAYMENT",
        )
        self.booking_id = booking_id


# === Errores de estado ===


class InvalidStatusError(DomainError):
    """El estado actual del pago no permite la operación."""

    http_status = 409

    def __init__(
        self,
        current_status: str | None,
        expected_status: str | list[str],
        operation: str,
        code: str = "INVALID_STATUS",
        message: str | None = None,
    ):
        expected = expected_status if isinstance(expected_status, str) else ", ".join(expected_status)
        super().__init__(
            message=message
            or f"Cannot {operation}: current status '{current_status}', expected '{expected}'",
            code=code,
        )
        self.current_status = current_status
        self.expected_status = expected_status
        self.operation = operation


class NoQuoteError(InvalidStatusError):
    """No hay cotización aceptada que pagar."""

    def __init__(self, booking_status: str):
        super().__init__(
            current_status=booking_status,
            expected_status=["quote_accepted", "payment_pending", "booked"],
            operation="create payment intent",
            code="NO_QUOTE",
            message="No quote to pay for",
        )


class PaymentIntentMismatchError(InvalidStatusError):
    """El intent confirmado por el cliente no es el de la reserva."""

    def __init__(self, expected_intent_id: str, received_intent_id: str):
        super().__init__(
            current_status=None,
            expected_status=expected_intent_id,
            operation="confirm payment",
            code="PAYMENT_INTENT_MISMATCH",
            message="Payment intent does not match this booking",
        )
        self.received_intent_id = received_intent_id


class PaymentAlreadyProcessedError(DomainError):
    """El pago ya fue autorizado o completado."""

    http_status = 409

    def __init__(self, booking_id: str, current_status: str):
        super().__init__(
            message=f"Payment has already been processed for booking {booking_id} ({current_status})",
            code="PAYMENT_ALREADY_PROCESSED",
        )
        self.booking_id = booking_id
        self.current_status = current_status


# === Errores de montos ===


class InvalidAmountError(DomainError):
    """Monto fuera de los límites del procesador o inválido."""

    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_AMOUNT")


class RefundExceedsTotalError(InvalidAmountError):
    """La suma de reembolsos superaría el total cobrado."""

    def __init__(self, requested, already_refunded, total):
        super().__init__(
            message=(
                f"Refund of {requested} would exceed total payment. "
                f"Already refunded: {already_refunded}, original: {total}"
            )
        )
        self.code = "REFUND_EXCEEDS_TOTAL"
        self.requested = requested
        self.already_refunded = already_refunded
        self.total = total


# === Errores del profesional (payee) ===


class PayeeNotReadyError(DomainError):
    """La cuenta conectada del profesional falta o no está habilitada."""

    http_status = 409

    def __init__(self, payee_id: str, message: str):
        super().__init__(message=message, code="PAYEE_NOT_READY")
        self.payee_id = payee_id


# === Errores del procesador ===


class ProcessorError(DomainError):
    """Falla opaca del procesador de pagos (Stripe)."""

    http_status = 502

    def __init__(self, operation: str, message: str):
        super().__init__(message=message or f"Stripe {operation} failed", code="STRIPE_ERROR")
        self.operation = operation


class TransferFailedError(DomainError):
    """Captura exitosa pero la transferencia al profesional falló."""

    http_status = 502

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message="Payment captured but transfer to professional failed. Admin will handle manually.",
            code="TRANSFER_FAILED",
        )
        self.booking_id = booking_id
        self.reason = reason


class InvalidWebhookSignatureError(DomainError):
    """Firma del webhook ausente o inválida."""

    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_WEBHOOK_SIGNATURE")


# === Concurrencia ===


class StaleLedgerRecordError(DomainError):
    """Otro escritor modificó el registro del ledger desde que se leyó."""

    http_status = 409

    def __init__(self, booking_id: str, expected_version: int):
        super().__init__(
            message=f"Payment for booking {booking_id} was modified concurrently, retry the operation",
            code="PAYMENT_CONCURRENTLY_MODIFIED",
        )
        self.booking_id = booking_id
        self.expected_version = expected_version
