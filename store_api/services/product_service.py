# store_api/services/product_service.py
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Iterable

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.core.config import get_settings
from store_api.core.storage_utils import (
    upload_to_storage,
    delete_public_url,
    generate_filename,
)
from store_api.models.product import Product, ProductImage, ProductSize
from store_api.repositories.category_repo import CategoryRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.schemas.product import (
    ProductCreate,
    ProductDeleteResult,
    ProductRead,
    ProductSizeRead,
    ProductUpdate,
)
from store_api.services.inventory_service import STOCK_IN, InventoryService

logger = logging.getLogger(__name__)

# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def slugify(text: str) -> str:
    """Lowercase and dash-separated, e.g. 'PE Shirt (Large)' -> 'pe-shirt-large'."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.strip().lower()).strip("-")
    return slug or "product"


class ProductService:
    """
    Catalog management: products, their size variants and photos.

    Stock is never written here directly. Opening balances go through
    InventoryService so the ledger and the stock columns agree.
    Photos live in Supabase Storage and are removed with the row.
    """

    def __init__(
        self,
        repo: ProductRepository,
        category_repo: CategoryRepository,
        inventory: InventoryService,
    ):
        self.repo = repo
        self.category_repo = category_repo
        self.inventory = inventory

    # ----- Helpers -----

    def _free_slug(self, session: Session, text: str) -> str:
        """First of `base`, `base-2`, `base-3`, ... not used by another product."""
        base = slugify(text)
        candidate, n = base, 1
        while self.repo.get_by_slug(session, candidate) is not None:
            n += 1
            candidate = f"{base}-{n}"
        return candidate

    def _ensure_category(self, session: Session, category_id: int | None) -> None:
        if category_id is not None and not self.category_repo.get_by_id(session, category_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )

    @staticmethod
    def _image_extension(content_type: str, file_bytes: bytes) -> str:
        ext = ALLOWED_IMAGE_CONTENT_TYPES.get(content_type)
        if ext is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
            )

        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Image too large (max 5MB).",
            )

        return ext

    def to_read(self, session: Session, product: Product) -> ProductRead:
        sizes = self.repo.list_sizes(session, product.id)
        return ProductRead(
            **product.model_dump(),
            sizes=[ProductSizeRead.model_validate(s) for s in sizes],
        )

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        category_id: int | None = None,
        search: str | None = None,
    ) -> list[ProductRead]:
        products = self.repo.list_products(
            session,
            skip=skip,
            limit=limit,
            only_active=only_active,
            category_id=category_id,
            search=search.strip() if search else None,
        )
        return [self.to_read(session, p) for p in products]

    def list_low_stock(self, session: Session) -> list[ProductRead]:
        return [self.to_read(session, p) for p in self.repo.list_low_stock(session)]

    def get_product(self, session: Session, product_id: int) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_product_by_slug(self, session: Session, slug: str) -> Product:
        """Storefront lookup; inactive products are treated as missing."""
        product = self.repo.get_by_slug(session, slug)
        if product is None or not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
        actor_id: uuid.UUID,
    ) -> ProductRead:
        """
        Create a product (and its size variants) with a unique slug.

        Opening stock is written as stock_in movements, so the ledger
        balance always matches the stock columns.
        """
        if payload.sizes and payload.stock:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Products with sizes take their opening stock per size",
            )
        self._ensure_category(session, payload.category_id)

        slug = self._free_slug(session, payload.slug or payload.name)
        reorder_point = payload.reorder_point
        if reorder_point is None:
            reorder_point = get_settings().LOW_STOCK_THRESHOLD

        product = self.repo.add(
            session,
            Product(
                name=payload.name,
                slug=slug,
                description=payload.description,
                price=payload.price,
                original_price=payload.original_price,
                stock=0,
                reorder_point=reorder_point,
                category_id=payload.category_id,
                is_active=payload.is_active,
            ),
        )

        for s in payload.sizes:
            self.repo.add_size(
                session,
                ProductSize(product_id=product.id, size=s.size, stock=0, price=s.price),
            )

        opening = [(s.size, s.stock) for s in payload.sizes] or [(None, payload.stock)]
        for size, quantity in opening:
            if quantity > 0:
                self.inventory.apply_movement(
                    session,
                    product=product,
                    size=size,
                    movement_type=STOCK_IN,
                    delta=quantity,
                    reason="initial_stock",
                    performed_by=actor_id,
                    notes="Opening balance",
                )

        session.commit()
        session.refresh(product)
        logger.info("Product #%s '%s' created (stock %s)", product.id, product.name, product.stock)
        return self.to_read(session, product)

    def update_product(
        self,
        session: Session,
        product_id: int,
        payload: ProductUpdate,
    ) -> ProductRead:
        """
        Partial update of a product. Stock only changes through movements.
        """
        product = self.get_product(session, product_id)
        data = payload.model_dump(exclude_unset=True)

        if "category_id" in data:
            self._ensure_category(session, data["category_id"])

        requested_slug = data.pop("slug", None)
        if requested_slug is not None and slugify(requested_slug) != product.slug:
            product.slug = self._free_slug(session, requested_slug)

        for field, value in data.items():
            if value is None and field != "category_id":
                continue
            setattr(product, field, value)

        product.updated_at = datetime.now(timezone.utc)
        product = self.repo.update(session, product)
        return self.to_read(session, product)

    def delete_product(
        self,
        session: Session,
        product_id: int,
    ) -> ProductDeleteResult:
        """
        Hard delete only products without history.

        Products referenced by orders or by the stock ledger are
        deactivated instead so order items and movements stay valid.
        """
        product = self.get_product(session, product_id)

        if self.repo.is_referenced_by_orders(session, product.id) or self.repo.has_stock_history(
            session, product.id
        ):
            product.is_active = False
            product.updated_at = datetime.now(timezone.utc)
            self.repo.update(session, product)
            logger.info("Product #%s deactivated (has history)", product.id)
            return ProductDeleteResult(
                product_id=product_id,
                action="deactivated",
                message="Product has order or stock history and was deactivated instead",
            )

        images = self.repo.list_images_for_product(session, product.id)
        if product.hero_image_url:
            delete_public_url(product.hero_image_url)
        for img in images:
            delete_public_url(img.image_url)

        self.repo.delete(session, product)
        logger.info("Product #%s deleted", product_id)
        return ProductDeleteResult(
            product_id=product_id,
            action="deleted",
            message="Product deleted",
        )

    # ----- Hero image -----

    def set_hero_image(
        self,
        session: Session,
        product_id: int,
        content_type: str,
        file_bytes: bytes,
    ) -> ProductRead:
        """
        Upload a new hero photo to products/<id>/hero-<uuid>.<ext>.

        The previous file is removed only once the new one is stored and
        the row points at it.
        """
        product = self.get_product(session, product_id)
        ext = self._image_extension(content_type, file_bytes)

        previous = product.hero_image_url
        path = f"products/{product.id}/hero-{generate_filename(ext)}"
        product.hero_image_url = upload_to_storage(path, file_bytes, content_type)
        product.updated_at = datetime.now(timezone.utc)
        product = self.repo.update(session, product)

        if previous:
            delete_public_url(previous)
        return self.to_read(session, product)

    # ----- Gallery images -----

    def list_images(
        self,
        session: Session,
        product_id: int,
    ) -> list[ProductImage]:
        self.get_product(session, product_id)
        return self.repo.list_images_for_product(session, product_id)

    def add_gallery_images(
        self,
        session: Session,
        product_id: int,
        files: Iterable[tuple[str, bytes]],
    ) -> list[ProductImage]:
        """
        Append photos to the gallery at products/<id>/gallery/<uuid>.<ext>.

        `files` holds (content_type, bytes) pairs. Every file is checked
        before the first upload, so a bad file in the batch stores nothing.
        """
        product = self.get_product(session, product_id)
        checked = [(ct, data, self._image_extension(ct, data)) for ct, data in files]
        next_order = len(self.repo.list_images_for_product(session, product.id))

        new_images: list[ProductImage] = []
        for idx, (content_type, file_bytes, ext) in enumerate(checked):
            path = f"products/{product.id}/gallery/{generate_filename(ext)}"
            url = upload_to_storage(path, file_bytes, content_type)

            created = self.repo.create_image(
                session,
                ProductImage(
                    product_id=product.id,
                    image_url=url,
                    sort_order=next_order + idx,
                ),
            )
            new_images.append(created)

        return new_images

    def remove_gallery_image(
        self,
        session: Session,
        product_id: int,
        image_id: int,
    ) -> None:
        """
        Delete a single gallery image and its Storage file.
        """
        image = self.repo.get_image_by_id(session, image_id)
        if not image or image.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found for this product",
            )

        delete_public_url(image.image_url)
        self.repo.delete_image(session, image)
