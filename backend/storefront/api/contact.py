"""
Contact API Endpoint
Contact page form; messages land in the admin inbox
"""
import logging

from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_contact_repository
from storefront.api.errors import to_http_exception
from storefront.core.config import settings
from storefront.core.exceptions import StorefrontError
from storefront.core.rate_limit import rate_limit
from storefront.domain.contact import ContactMessageCreate
from storefront.repositories.contact_repository import ContactMessageRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def send_contact_message(
    message: ContactMessageCreate,
    repo: ContactMessageRepository = Depends(get_contact_repository),
    _: None = Depends(rate_limit(settings.CONTACT_RATE_LIMIT)),
):
    """Store a contact form message"""
    try:
        repo.create(message)
    except StorefrontError as e:
        raise to_http_exception(e)

    logger.info(f"Contact message received: {message.subject[:50]}")
    return {"status": "success", "message": "Thank you! We will get back to you soon."}
