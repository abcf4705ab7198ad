"""
Unit tests for CatalogService (admin product editor)
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.core.exceptions import NotFoundError, ValidationFailed
from storefront.domain.checkout import ImageUpload
from storefront.domain.product import ProductCreate, ProductUpdate
from storefront.services.catalog_service import CatalogService


@pytest.fixture
def products():
    return MagicMock()


@pytest.fixture
def images(product_image_storage):
    return product_image_storage


@pytest.fixture
def catalog(products, images):
    return CatalogService(products, images)


class TestCatalogService:

    def test_create_product(self, catalog, products, sample_product):
        products.create.return_value = sample_product
        draft = ProductCreate(name="Oak Sofa", price=Decimal("25000"))

        created = catalog.create_product(draft)

        assert created is sample_product
        products.create.assert_called_once_with(draft)

    def test_update_missing_product(self, catalog, products):
        products.update.return_value = None

        with pytest.raises(NotFoundError):
            catalog.update_product("missing", ProductUpdate(price=Decimal("10")))

    def test_delete_missing_product(self, catalog, products):
        products.delete.return_value = False

        with pytest.raises(NotFoundError):
            catalog.delete_product("missing")

    def test_upload_image_returns_public_url(self, catalog, images):
        url = catalog.upload_image(ImageUpload("sofa.webp", "image/webp", b"RIFF"))

        [key] = images.objects
        assert key.endswith(".webp")
        assert url == f"https://storage.test/public/product-images/{key}"

    def test_upload_rejects_non_images(self, catalog, images):
        with pytest.raises(ValidationFailed):
            catalog.upload_image(ImageUpload("notes.txt", "text/plain", b"hi"))

        assert images.objects == {}

    def test_upload_rejects_large_images(self, catalog):
        with pytest.raises(ValidationFailed) as exc_info:
            catalog.upload_image(ImageUpload("big.png", "image/png", b"0" * (10 * 1024 * 1024 + 1)))

        assert "10MB" in exc_info.value.errors["file"]


class TestProductRecords:

    def test_create_record_generates_slug_and_nulls_empty_text(self):
        record = ProductCreate(name="Royal Oak Sofa!", price=Decimal("100.5"), description="").to_record()

        assert record["slug"] == "royal-oak-sofa"
        assert record["description"] is None
        assert record["price"] == 100.5

    def test_update_record_only_has_sent_fields(self):
        record = ProductUpdate(price=Decimal("99"), in_stock=False).to_record()

        assert record == {"price": 99.0, "in_stock": False}
