# store_api/routers/categories.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from store_api.core.auth import require_admin
from store_api.database import get_session
from store_api.repositories.category_repo import CategoryRepository
from store_api.schemas.category import CategoryRead, CategoryWrite
from store_api.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])

repo = CategoryRepository()
service = CategoryService(repo)


@router.get("", response_model=list[CategoryRead])
def list_categories(session: Session = Depends(get_session)):
    """
    All categories, by name (public).
    """
    return service.list_categories(session)


@router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_category(
    payload: CategoryWrite,
    session: Session = Depends(get_session),
):
    return service.create_category(session, payload)


@router.put(
    "/{category_id}",
    response_model=CategoryRead,
    dependencies=[Depends(require_admin)],
)
def rename_category(
    category_id: int,
    payload: CategoryWrite,
    session: Session = Depends(get_session),
):
    return service.rename_category(session, category_id, payload)


@router.delete(
    "/{category_id}",
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """
    Delete a category (admin only). Refused with 409 while products use it.
    """
    service.delete_category(session, category_id)
    return {"message": "Category deleted successfully"}
