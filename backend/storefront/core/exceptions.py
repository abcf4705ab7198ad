"""
Domain exceptions for the storefront

Services raise these; routers translate them into HTTP responses.
"""
from typing import Dict, Optional


class StorefrontError(Exception):
    """Base class for every error raised by the storefront layers"""

    code = "storefront_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationFailed(StorefrontError):
    """
    Field-level validation failure.

    errors maps each offending field to the first message reported for it.
    """

    code = "validation_error"

    def __init__(self, errors: Dict[str, str], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = dict(errors)


class CheckoutValidationError(ValidationFailed):
    code = "checkout_validation_error"


class OrderValidationError(ValidationFailed):
    code = "order_validation_error"


class EmptyCartError(StorefrontError):
    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class CheckoutStateError(StorefrontError):
    """Operation not allowed in the current checkout step"""

    code = "checkout_state_error"


class BackendServiceError(StorefrontError):
    """A call to the hosted persistence/auth/storage service failed"""

    code = "backend_unavailable"

    def __init__(self, message: str, retryable: bool = True, cause: Optional[Exception] = None):
        super().__init__(message)
        self.retryable = retryable
        self.cause = cause


class CheckoutSubmissionError(StorefrontError):
    """Order submission failed; the cart is untouched and the user may retry"""

    code = "checkout_submission_failed"
    retryable = True


class NotFoundError(StorefrontError):
    code = "not_found"


class InvalidTransitionError(StorefrontError):
    code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class AuthenticationError(StorefrontError):
    code = "authentication_failed"


class PermissionDeniedError(StorefrontError):
    code = "permission_denied"


class MalformedOrderPayloadError(StorefrontError):
    code = "malformed_order_payload"


class NotificationDeliveryError(StorefrontError):
    code = "notification_failed"


class ConflictError(StorefrontError):
    code = "conflict"
