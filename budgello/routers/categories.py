import uuid
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel import SQLModel, Field, Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.user import User
from ..services.categories import CategoryRegistry


router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)


class CategoryBase(SQLModel):
    name: str = Field(min_length=1, max_length=50)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CategoryBase):
    pass


class CategoryRead(CategoryBase):
    id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return CategoryRegistry(session).create(current_user.id, payload.name)


@router.get("", response_model=List[CategoryRead])
def list_categories(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return CategoryRegistry(session).list_for_user(current_user.id)


@router.patch("/{category_id}", response_model=CategoryRead)
def rename_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return CategoryRegistry(session).rename(category_id, current_user.id, payload.name)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Delete a category. Transactions that used it stay, with no category."""
    CategoryRegistry(session).delete(category_id, current_user.id)
    return None
