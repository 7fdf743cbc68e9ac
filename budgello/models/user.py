import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class Role(str, Enum):
    admin = "admin"
    user = "user"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    username: str = Field(index=True, unique=True, max_length=50)
    hashed_password: str
    role: Role = Field(default=Role.user)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
