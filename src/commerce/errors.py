"""Commerce-specific exceptions.

Most failures use Protean's own exceptions (ValidationError for invalid input
and rule violations, ObjectNotFoundError for missing records,
ExpectedVersionError for lost optimistic-concurrency races). The types here
cover what Protean has no name for.
"""

from protean.exceptions import InvalidOperationError, ValidationError


class UpstreamError(Exception):
    """A collaborator outside the store (payment gateway, email API) failed or timed out."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class InvalidSignatureError(ValidationError):
    """A payment event could not be verified against the signing secret."""

    def __init__(self, message: str = "Payment event signature could not be verified"):
        super().__init__({"signature": [message]})


class PaymentNotConfirmed(InvalidOperationError):
    """The gateway does not report the payment session as paid."""

    def __init__(self, session_id: str, payment_status: str | None):
        self.session_id = session_id
        self.payment_status = payment_status
        super().__init__(f"Payment session {session_id} is not paid (status: {payment_status})")


class InsufficientStock(Exception):
    """Live batches cannot cover a requested quantity."""

    def __init__(self, product_ref: str, requested: int, available: int):
        self.product_ref = product_ref
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_ref}: requested {requested}, available {available}")
