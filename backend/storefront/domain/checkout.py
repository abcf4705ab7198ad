"""
Checkout Domain Models

The shipping form collected in the first checkout step, and the payment
screenshot attached in the second one.
"""
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

# Any letter (any script), whitespace, apostrophe or hyphen
NAME_PATTERN = re.compile(r"^(?:[^\W\d_]|[\s'-])+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError("checkout_field", message)


def _check_length(value: str, label: str, min_length: int, max_length: int) -> None:
    if len(value) < min_length:
        if min_length == 1:
            raise _fail(f"{label} is required")
        raise _fail(f"{label} must be at least {min_length} characters")
    if len(value) > max_length:
        raise _fail(f"{label} must be less than {max_length} characters")


class CheckoutForm(BaseModel):
    """
    Shipping information

    Each validator reports only the first constraint a field violates.
    Missing fields default to "" so they fail as "required" rather than
    with a generic error.
    """

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""

    model_config = ConfigDict(validate_default=True)

    @field_validator("first_name", "last_name")
    @classmethod
    def _check_name(cls, value: str, info: ValidationInfo) -> str:
        label = "First name" if info.field_name == "first_name" else "Last name"
        _check_length(value, label, 1, 50)
        if not NAME_PATTERN.match(value):
            raise _fail(f"{label} contains invalid characters")
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not value:
            raise _fail("Email is required")
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise _fail("Please enter a valid email address")
        if len(value) > 100:
            raise _fail("Email must be less than 100 characters")
        return value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        if not value:
            raise _fail("Phone number is required")
        if not PHONE_PATTERN.match(value):
            raise _fail("Please enter a valid phone number (10-15 digits)")
        return value

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        _check_length(value, "Address", 5, 200)
        return value

    @field_validator("city")
    @classmethod
    def _check_city(cls, value: str) -> str:
        _check_length(value, "City", 2, 50)
        return value

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


def validate_checkout_form(data: dict) -> Tuple[Optional[CheckoutForm], Dict[str, str]]:
    """
    Validate raw form input.

    Returns (form, {}) on success or (None, errors) where errors keeps the
    first message per field.
    """
    try:
        return CheckoutForm(**data), {}
    except ValidationError as e:
        errors: Dict[str, str] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            errors.setdefault(field, error["msg"])
        return None, errors


@dataclass(frozen=True)
class ImageUpload:
    """Uploaded image (payment screenshot or product photo) as received from the client"""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return (self.content_type or "").lower().startswith("image/")
