# store_api/services/category_service.py
from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.models.category import Category
from store_api.repositories.category_repo import CategoryRepository
from store_api.schemas.category import CategoryWrite


class CategoryService:
    """
    Category CRUD. Names are unique case-insensitively; categories still
    used by products cannot be deleted.
    """

    def __init__(self, repo: CategoryRepository):
        self.repo = repo

    def list_categories(self, session: Session) -> list[Category]:
        return self.repo.list(session)

    def get_category(self, session: Session, category_id: int) -> Category:
        category = self.repo.get_by_id(session, category_id)
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )
        return category

    def _ensure_name_free(
        self,
        session: Session,
        name: str,
        exclude_id: int | None = None,
    ) -> None:
        existing = self.repo.get_by_name(session, name)
        if existing and existing.id != exclude_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Category name already exists",
            )

    def create_category(self, session: Session, payload: CategoryWrite) -> Category:
        self._ensure_name_free(session, payload.name)
        return self.repo.save(session, Category(name=payload.name))

    def rename_category(
        self,
        session: Session,
        category_id: int,
        payload: CategoryWrite,
    ) -> Category:
        category = self.get_category(session, category_id)
        self._ensure_name_free(session, payload.name, exclude_id=category.id)
        category.name = payload.name
        return self.repo.save(session, category)

    def delete_category(self, session: Session, category_id: int) -> None:
        category = self.get_category(session, category_id)
        in_use = self.repo.count_products(session, category.id)
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot delete category: {in_use} product(s) still use it",
            )
        self.repo.delete(session, category)
