"""Article model definitions."""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ArticleStatusEnum(str, Enum):
    """Article status enumeration."""
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    SCHEDULED = "scheduled"


class UserRoleEnum(str, Enum):
    """Role of the actor requesting a status change."""
    ADMIN = "admin"
    PUBLISHER = "publisher"
    READER = "reader"


class ArticleModel(BaseModel):
    """Article model for database representation."""
    id: str = Field(alias="_id")
    title: str
    content: str
    category: Optional[str] = None
    author_id: str
    status: ArticleStatusEnum
    scheduled_publish_at: Optional[datetime] = None
    reviewer_comment: Optional[str] = ""
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True
