"""
Checkout Service
Two-step checkout (shipping -> payment) that turns a cart into an order

Handles:
- Shipping form validation (first error per field)
- Payment method selection and payment screenshot validation
- Screenshot upload, then order insert (never the insert without the upload)
- Cart clearing only after the order is stored
"""
import logging
import mimetypes
import secrets
import string
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Callable, Dict, Optional

from storefront.core.config import Settings, settings as default_settings
from storefront.core.exceptions import (
    BackendServiceError, CheckoutStateError, CheckoutSubmissionError, CheckoutValidationError,
    EmptyCartError,
)
from storefront.domain.checkout import CheckoutForm, ImageUpload, validate_checkout_form
from storefront.domain.order import OrderCreate, OrderItem, PaymentMethod
from storefront.services.cart_store import CartStore

logger = logging.getLogger(__name__)

SHIPPING_COST = Decimal("0")

_BASE36 = string.digits + string.ascii_lowercase


class CheckoutStep(str, Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_object_key(filename: str, content_type: str, now_ms: Optional[int] = None) -> str:
    """
    Collision-resistant storage key: <epoch ms>-<random base36>.<original extension>

    Falls back to an extension guessed from the MIME type when the file
    name has none.
    """
    extension = PurePath(filename or "").suffix.lstrip(".").lower()
    if not extension:
        guessed = mimetypes.guess_extension(content_type or "") or ""
        extension = guessed.lstrip(".") or "img"
    random_part = to_base36(secrets.randbits(52))
    return f"{now_ms if now_ms is not None else _now_ms()}-{random_part}.{extension}"


def generate_order_number(prefix: str = "TRK", now_ms: Optional[int] = None) -> str:
    """Human-readable order number, e.g. TRK-M2F4K9QZ"""
    return f"{prefix}-{to_base36(now_ms if now_ms is not None else _now_ms()).upper()}"


@dataclass(frozen=True)
class OrderConfirmation:
    """What the confirmation view needs after a successful submission"""
    order_id: str
    order_number: str
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "total": float(self.total),
        }


class CheckoutWorkflow:
    """
    State machine: shipping -> payment, with an explicit back transition

    There is no terminal in-memory state: after a successful confirm_order
    the caller discards the workflow.

    Args:
        cart: The session's CartStore (must not be empty)
        orders: Order repository (create)
        screenshots: Storage for the payment-screenshots bucket (upload/remove)
        config: Settings (screenshot size limit, order number prefix, destinations)
        order_number_factory: Override for deterministic order numbers in tests
    """

    def __init__(
        self,
        cart: CartStore,
        orders,
        screenshots,
        config: Optional[Settings] = None,
        order_number_factory: Optional[Callable[[], str]] = None,
    ):
        if cart.is_empty:
            raise EmptyCartError()

        self.cart = cart
        self.orders = orders
        self.screenshots = screenshots
        self.config = config or default_settings
        self._order_number_factory = order_number_factory or (
            lambda: generate_order_number(self.config.ORDER_NUMBER_PREFIX)
        )

        self.step = CheckoutStep.SHIPPING
        self.form: Optional[CheckoutForm] = None
        self.form_data: Dict[str, str] = {}
        self.form_errors: Dict[str, str] = {}
        self.payment_method = PaymentMethod.VODAFONE
        self.screenshot: Optional[ImageUpload] = None
        self.screenshot_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Shipping step
    # ------------------------------------------------------------------

    def submit_shipping(self, data: dict) -> None:
        """
        Validate the shipping form and move to the payment step

        Raises CheckoutValidationError (step stays 'shipping') when any field
        is invalid; form_errors then holds the first error of each field.
        """
        self._require_step(CheckoutStep.SHIPPING)
        self.form_data = {key: value for key, value in data.items() if isinstance(value, str)}

        form, errors = validate_checkout_form(data)
        if errors:
            self.form_errors = errors
            raise CheckoutValidationError(errors, "Shipping information is invalid")

        self.form = form
        self.form_errors = {}
        self.step = CheckoutStep.PAYMENT

    def back(self) -> None:
        """payment -> shipping; form and attachment are kept"""
        self._require_step(CheckoutStep.PAYMENT)
        self.step = CheckoutStep.SHIPPING

    # ------------------------------------------------------------------
    # Payment step
    # ------------------------------------------------------------------

    def select_payment_method(self, method) -> None:
        self._require_step(CheckoutStep.PAYMENT)
        try:
            self.payment_method = PaymentMethod(method)
        except ValueError:
            raise CheckoutValidationError({"payment_method": f"Unsupported payment method: {method}"})

    def attach_screenshot(self, upload: ImageUpload) -> None:
        """
        Attach the payment proof

        Rejected (not attached) when it is not an image or exceeds the size limit.
        """
        self._require_step(CheckoutStep.PAYMENT)

        if not upload.is_image:
            self.screenshot_error = "Please select an image file"
        elif upload.size > self.config.MAX_SCREENSHOT_BYTES:
            limit_mb = self.config.MAX_SCREENSHOT_BYTES // (1024 * 1024)
            self.screenshot_error = f"Image size must be less than {limit_mb}MB"
        else:
            self.screenshot_error = None
            self.screenshot = upload
            return

        raise CheckoutValidationError({"screenshot": self.screenshot_error})

    def remove_screenshot(self) -> None:
        self.screenshot = None
        self.screenshot_error = None

    def confirm_order(self):
        """
        Submit the order

        1. Upload the screenshot. On failure nothing else happens.
        2. Insert the order (awaiting_payment / pending). When the insert
           reports a failure the order is looked up by its number: if it
           was stored after all it is used as is, if it is certainly absent
           the uploaded screenshot is removed (best effort), and if the
           lookup fails too the screenshot is kept.
        3. Clear the cart.

        Returns:
            OrderConfirmation

        Raises:
            CheckoutValidationError: no screenshot attached
            CheckoutSubmissionError: upload or insert failed; cart untouched
        """
        self._require_step(CheckoutStep.PAYMENT)
        if self.cart.is_empty:
            raise EmptyCartError()

        if self.screenshot is None:
            self.screenshot_error = "Please upload payment screenshot"
            raise CheckoutValidationError({"screenshot": self.screenshot_error})

        screenshot = self.screenshot
        key = generate_object_key(screenshot.filename, screenshot.content_type)

        try:
            self.screenshots.upload(key, screenshot.data, screenshot.content_type)
        except BackendServiceError as e:
            logger.error(f"Screenshot upload failed, order not submitted: {e}")
            self.screenshot_error = "An error occurred. Please try again."
            raise CheckoutSubmissionError("Could not upload payment screenshot")

        draft = self._build_order(key)

        try:
            order = self.orders.create(draft)
        except BackendServiceError as e:
            logger.error(f"Order insert failed for {draft.order_number}: {e}")
            order = self._recover_order(draft.order_number, key)
            if order is None:
                self.screenshot_error = "An error occurred. Please try again."
                raise CheckoutSubmissionError("Could not place order")

        self.cart.clear_cart()
        logger.info(f"Order {draft.order_number} submitted ({order.id}), total {order.total}")

        return OrderConfirmation(order_id=order.id, order_number=draft.order_number, total=order.total)

    def _build_order(self, screenshot_key: str) -> OrderCreate:
        items = [
            OrderItem(
                id=item.id,
                name=item.name,
                name_ar=item.name_ar,
                price=item.price,
                quantity=item.quantity,
                image=item.image,
            )
            for item in self.cart.items
        ]
        return OrderCreate(
            order_number=self._order_number_factory(),
            customer_name=self.form.customer_name,
            customer_email=self.form.email,
            customer_phone=self.form.phone,
            shipping_address=self.form.address,
            city=self.form.city,
            items=items,
            subtotal=self.cart.get_total(),
            shipping=SHIPPING_COST,
            payment_method=self.payment_method,
            screenshot_url=screenshot_key,
        )

    def _recover_order(self, order_number: str, screenshot_key: str):
        """
        Order stored by an insert whose response was lost, or None.

        The screenshot is only discarded once the order is known not to exist.
        """
        try:
            order = self.orders.find_by_order_number(order_number)
        except BackendServiceError as e:
            logger.warning(f"Could not check whether order {order_number} was stored, keeping {screenshot_key}: {e}")
            return None

        if order is not None:
            logger.warning(f"Order {order_number} was stored despite the insert error ({order.id})")
            return order

        self._discard_screenshot(screenshot_key)
        return None

    def _discard_screenshot(self, key: str) -> None:
        """Remove a screenshot whose order was never stored"""
        try:
            self.screenshots.remove([key])
            logger.info(f"Removed orphaned screenshot {key}")
        except BackendServiceError as e:
            logger.warning(f"Could not remove orphaned screenshot {key}: {e}")

    # ------------------------------------------------------------------

    def _require_step(self, step: CheckoutStep) -> None:
        if self.step is not step:
            raise CheckoutStateError(f"Not allowed in the '{self.step.value}' step")

    def summary(self) -> dict:
        subtotal = self.cart.get_total()
        return {
            "step": self.step.value,
            "form": self.form.model_dump() if self.form else self.form_data,
            "form_errors": self.form_errors,
            "payment_method": self.payment_method.value,
            "payment_destinations": self.config.get_payment_destinations(),
            "screenshot": {
                "filename": self.screenshot.filename,
                "content_type": self.screenshot.content_type,
                "size": self.screenshot.size,
            } if self.screenshot else None,
            "screenshot_error": self.screenshot_error,
            "subtotal": float(subtotal),
            "shipping": float(SHIPPING_COST),
            "total": float(subtotal + SHIPPING_COST),
            "item_count": self.cart.get_item_count(),
        }
