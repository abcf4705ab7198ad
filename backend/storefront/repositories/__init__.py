"""
Repository Layer - Data Access

This layer handles all Supabase queries and returns domain models.
Repositories abstract away PostgREST/Storage details from business logic.
"""
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.storage_repository import StorageRepository
from storefront.repositories.contact_repository import ContactMessageRepository
from storefront.repositories.role_repository import RoleRepository

__all__ = [
    'ProductRepository',
    'OrderRepository',
    'StorageRepository',
    'ContactMessageRepository',
    'RoleRepository',
]
