"""Error taxonomy for the checkout lifecycle.

Every error raised by the lifecycle service is a ``CheckoutError``. The
service tags it with the name of the failing operation before re-raising,
so the request layer can render ``str(exc)`` directly.
"""

from typing import Optional


class CheckoutError(Exception):
    """Base class for checkout failures."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"[{self.operation}] {self.message}"
        return self.message


class NotFoundError(CheckoutError):
    """A referenced user, order or payment does not exist."""

    MESSAGES = {
        "user": "User does not exist",
        "order": "Order not found for the given PayPal order ID",
        "payment": "Payment not found or does not belong to the user",
    }

    def __init__(self, resource: str, message: Optional[str] = None):
        self.resource = resource
        super().__init__(message or self.MESSAGES.get(resource, f"{resource} not found"))


class InvalidAmountError(CheckoutError):
    """Refund amount exceeds the original payment amount."""


class PersistenceError(CheckoutError):
    """The database rejected a read or write."""


class PaymentProviderError(CheckoutError):
    """The payment provider call failed or returned an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(PaymentProviderError):
    pass


class RemoteOrderError(PaymentProviderError):
    pass


class CaptureError(PaymentProviderError):
    pass


class RefundError(PaymentProviderError):
    pass
