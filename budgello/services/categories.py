import logging
import uuid
from typing import List

from sqlmodel import Session, select

from ..core.clock import utcnow
from ..core.errors import BadRequest, Conflict, NotFound
from ..database import commit_or_conflict
from ..models.category import Category
from ..models.transaction import Transaction


logger = logging.getLogger(__name__)

DUPLICATE_CATEGORY = "Category already exists"


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise BadRequest("Category name is required")
    return name


class CategoryRegistry:
    def __init__(self, session: Session):
        self.session = session

    def _exists(self, owner_id: uuid.UUID, name: str) -> bool:
        stmt = select(Category).where(Category.user_id == owner_id, Category.name == name)
        return self.session.exec(stmt).first() is not None

    def create(self, owner_id: uuid.UUID, name: str) -> Category:
        name = _clean_name(name)
        if self._exists(owner_id, name):
            raise Conflict(DUPLICATE_CATEGORY)

        now = utcnow()
        category = Category(id=uuid.uuid4(), user_id=owner_id, name=name, created_at=now, updated_at=now)
        self.session.add(category)
        commit_or_conflict(self.session, DUPLICATE_CATEGORY)
        self.session.refresh(category)
        logger.info("Created category %s for user %s", category.id, owner_id)
        return category

    def list_for_user(self, owner_id: uuid.UUID) -> List[Category]:
        stmt = select(Category).where(Category.user_id == owner_id).order_by(Category.name)
        return list(self.session.exec(stmt).all())

    def get_owned(self, category_id: uuid.UUID, owner_id: uuid.UUID) -> Category:
        category = self.session.get(Category, category_id)
        if category is None or category.user_id != owner_id:
            raise NotFound("Category not found")
        return category

    def rename(self, category_id: uuid.UUID, owner_id: uuid.UUID, name: str) -> Category:
        category = self.get_owned(category_id, owner_id)
        name = _clean_name(name)
        if name != category.name and self._exists(owner_id, name):
            raise Conflict(DUPLICATE_CATEGORY)

        category.name = name
        category.updated_at = utcnow()
        self.session.add(category)
        commit_or_conflict(self.session, DUPLICATE_CATEGORY)
        self.session.refresh(category)
        return category

    def delete(self, category_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        """Delete a category; transactions that used it keep existing, uncategorized."""
        category = self.get_owned(category_id, owner_id)

        referencing = self.session.exec(
            select(Transaction).where(Transaction.category_id == category_id)
        ).all()
        now = utcnow()
        for tx in referencing:
            tx.category_id = None
            tx.updated_at = now
            self.session.add(tx)
        self.session.flush()

        self.session.delete(category)
        self.session.commit()
        logger.info("Deleted category %s, detached %d transactions", category_id, len(referencing))
