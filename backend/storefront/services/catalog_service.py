"""
Catalog Service
Admin product editor operations that span the table and the image bucket
"""
import logging

from storefront.core.exceptions import NotFoundError, ValidationFailed
from storefront.domain.checkout import ImageUpload
from storefront.domain.product import Product, ProductCreate, ProductUpdate
from storefront.services.checkout_service import generate_object_key

logger = logging.getLogger(__name__)

MAX_PRODUCT_IMAGE_BYTES = 10 * 1024 * 1024


class CatalogService:
    """
    Args:
        products: ProductRepository
        images: StorageRepository of the product-images bucket
    """

    def __init__(self, products, images):
        self.products = products
        self.images = images

    def create_product(self, data: ProductCreate) -> Product:
        product = self.products.create(data)
        logger.info(f"Product {product.id} created ({product.slug})")
        return product

    def update_product(self, product_id: str, changes: ProductUpdate) -> Product:
        product = self.products.update(product_id, changes)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def delete_product(self, product_id: str) -> None:
        if not self.products.delete(product_id):
            raise NotFoundError(f"Product {product_id} not found")
        logger.info(f"Product {product_id} deleted")

    def upload_image(self, upload: ImageUpload) -> str:
        """Store a product image and return its public URL"""
        if not upload.is_image:
            raise ValidationFailed({"file": "Please select an image file"})
        if upload.size > MAX_PRODUCT_IMAGE_BYTES:
            raise ValidationFailed({"file": "Image size must be less than 10MB"})

        key = generate_object_key(upload.filename, upload.content_type)
        self.images.upload(key, upload.data, upload.content_type)
        return self.images.get_public_url(key)
