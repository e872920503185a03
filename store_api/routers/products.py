# store_api/routers/products.py
from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from store_api.core.auth import require_admin
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.category_repo import CategoryRepository
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.repositories.stock_movement_repo import StockMovementRepository
from store_api.schemas.product import (
    ProductCreate,
    ProductDeleteResult,
    ProductImageRead,
    ProductRead,
    ProductUpdate,
)
from store_api.services.inventory_service import InventoryService
from store_api.services.notification_service import NotificationService
from store_api.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
inventory = InventoryService(
    repo,
    StockMovementRepository(),
    NotificationService(NotificationRepository()),
)
service = ProductService(repo, CategoryRepository(), inventory)


def _read_upload(upload: UploadFile) -> tuple[str, bytes]:
    """(content_type, bytes) of an uploaded image; type is checked by the service."""
    if not upload.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing content-type for {upload.filename or 'uploaded file'}",
        )
    return upload.content_type, upload.file.read()


# -------- Storefront (public) --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    only_active: bool = True,
    category_id: int | None = None,
    search: str | None = None,
):
    """
    Catalog listing by name. `search` looks at name and description,
    ignoring case; inactive products are hidden unless `only_active=false`.
    """
    return service.list_products(
        session,
        skip=skip,
        limit=limit,
        only_active=only_active,
        category_id=category_id,
        search=search,
    )


@router.get(
    "/low-stock",
    response_model=list[ProductRead],
    dependencies=[Depends(require_admin)],
)
def list_low_stock_products(session: Session = Depends(get_session)):
    return service.list_low_stock(session)


@router.get("/by-slug/{slug}", response_model=ProductRead)
def get_product_by_slug(slug: str, session: Session = Depends(get_session)):
    return service.to_read(session, service.get_product_by_slug(session, slug))


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, session: Session = Depends(get_session)):
    return service.to_read(session, service.get_product(session, product_id))


@router.get("/{product_id}/images", response_model=list[ProductImageRead])
def list_product_images(product_id: int, session: Session = Depends(get_session)):
    return service.list_images(session, product_id)


# -------- Back office --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Add a product to the catalog.

    Sized items (uniforms, PE wear) list their variants in `sizes`, each
    with its own opening stock and optional price. Opening stock is
    written to the stock movement ledger as `initial_stock`.
    """
    return service.create_product(session, payload, admin.id)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Edit catalog fields. Stock changes go through /stock-movements.
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    response_model=ProductDeleteResult,
    dependencies=[Depends(require_admin)],
)
def delete_product(product_id: int, session: Session = Depends(get_session)):
    """
    Remove a product. If it was ever ordered or moved in stock it is only
    deactivated, and `action` in the response says which happened.
    """
    return service.delete_product(session, product_id)


@router.post(
    "/{product_id}/hero-image",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def upload_hero_image(
    product_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Set the main product photo (JPEG, PNG or WEBP, max 5MB). The previous
    photo is removed from storage.
    """
    content_type, data = _read_upload(file)
    return service.set_hero_image(session, product_id, content_type, data)


@router.post(
    "/{product_id}/gallery",
    response_model=list[ProductImageRead],
    dependencies=[Depends(require_admin)],
)
def upload_gallery_images(
    product_id: int,
    files: list[UploadFile] = File(...),
    session: Session = Depends(get_session),
):
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded",
        )
    return service.add_gallery_images(session, product_id, [_read_upload(f) for f in files])


@router.delete(
    "/{product_id}/gallery/{image_id}",
    dependencies=[Depends(require_admin)],
)
def delete_gallery_image(
    product_id: int,
    image_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    service.remove_gallery_image(session, product_id, image_id)
    return {"message": "Gallery image deleted successfully"}
