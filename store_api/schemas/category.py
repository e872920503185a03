# store_api/schemas/category.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class CategoryWrite(SQLModel):
    """
    Payload for creating or renaming a category.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryRead(SQLModel):
    id: int
    name: str
    created_at: datetime
