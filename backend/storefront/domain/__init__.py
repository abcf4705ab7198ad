"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from storefront.domain.product import Product, Category
from storefront.domain.cart import CartItem
from storefront.domain.checkout import CheckoutForm, ImageUpload
from storefront.domain.order import (
    Order, OrderItem, OrderCreate, OrderStatus, PaymentStatus, PaymentMethod, OrderTimelineEntry,
)
from storefront.domain.contact import ContactMessage, ContactMessageCreate
from storefront.domain.i18n import Language

__all__ = [
    'Product', 'Category', 'CartItem', 'CheckoutForm', 'ImageUpload',
    'Order', 'OrderItem', 'OrderCreate', 'OrderStatus', 'PaymentStatus', 'PaymentMethod',
    'OrderTimelineEntry', 'ContactMessage', 'ContactMessageCreate', 'Language',
]
