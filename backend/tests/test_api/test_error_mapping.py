"""
Tests for the StorefrontError -> HTTP translation
"""
import pytest

from storefront.api.errors import to_http_exception
from storefront.core.exceptions import (
    AuthenticationError, BackendServiceError, CheckoutStateError, CheckoutSubmissionError,
    CheckoutValidationError, ConflictError, EmptyCartError, InvalidTransitionError,
    MalformedOrderPayloadError, NotFoundError, PermissionDeniedError,
)


@pytest.mark.parametrize("error, status_code", [
    (CheckoutValidationError({"email": "Invalid email address"}), 422),
    (EmptyCartError(), 409),
    (CheckoutStateError("Not allowed in the 'shipping' step"), 409),
    (InvalidTransitionError("delivered", "pending"), 409),
    (ConflictError("This user already has this role"), 409),
    (CheckoutSubmissionError("Could not place order"), 503),
    (BackendServiceError("Error listing products"), 503),
    (NotFoundError("Order o1 not found"), 404),
    (PermissionDeniedError("Only the owner can delete orders"), 403),
    (AuthenticationError("Invalid email or password"), 401),
    (MalformedOrderPayloadError("bad items"), 500),
])
def test_status_codes(error, status_code):
    assert to_http_exception(error).status_code == status_code


def test_validation_detail_lists_fields():
    exc = to_http_exception(CheckoutValidationError({"phone": "Invalid phone number"}, "Shipping information is invalid"))

    assert exc.detail == {
        "code": "checkout_validation_error",
        "message": "Shipping information is invalid",
        "errors": {"phone": "Invalid phone number"},
    }


def test_backend_error_keeps_retryable_flag():
    exc = to_http_exception(BackendServiceError("Error deleting order", retryable=False))

    assert exc.detail["retryable"] is False
    assert exc.detail["code"] == "backend_unavailable"


def test_authentication_error_challenges():
    assert to_http_exception(AuthenticationError("Invalid email or password")).headers == {"WWW-Authenticate": "Bearer"}


def test_invalid_transition_message():
    exc = to_http_exception(InvalidTransitionError("shipped", "pending"))

    assert exc.detail["message"] == "Cannot move order from 'shipped' to 'pending'"
