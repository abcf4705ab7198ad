"""
Translation of domain exceptions into HTTP responses
"""
import logging

from fastapi import HTTPException, status

from storefront.core.exceptions import (
    AuthenticationError, BackendServiceError, CheckoutStateError, CheckoutSubmissionError,
    ConflictError, EmptyCartError, InvalidTransitionError, NotFoundError, PermissionDeniedError,
    StorefrontError, ValidationFailed,
)

logger = logging.getLogger(__name__)

_CONFLICTS = (EmptyCartError, CheckoutStateError, InvalidTransitionError, ConflictError)


def to_http_exception(e: StorefrontError) -> HTTPException:
    """
    Map a StorefrontError onto an HTTPException.

    detail is always {"code", "message"}, plus "errors" for validation
    failures and "retryable" for backend failures.
    """
    detail = {"code": e.code, "message": e.message or str(e)}

    if isinstance(e, ValidationFailed):
        detail["errors"] = e.errors
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

    if isinstance(e, _CONFLICTS):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    if isinstance(e, (CheckoutSubmissionError, BackendServiceError)):
        detail["retryable"] = getattr(e, "retryable", True)
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)

    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

    if isinstance(e, AuthenticationError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.error(f"Unhandled storefront error: {e!r}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
