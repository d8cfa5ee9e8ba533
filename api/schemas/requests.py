"""Request schemas for API endpoints."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from api.models.article import ArticleStatusEnum


class ArticleCreateRequest(BaseModel):
    """Request schema for article creation."""
    title: str = Field(..., min_length=1, max_length=300, description="Article title")
    content: str = Field(..., min_length=1, description="Article body")
    category: Optional[str] = Field(default=None, description="Article category")
    status: Optional[ArticleStatusEnum] = Field(
        default=None,
        description="Requested initial status; the author's role decides what is granted"
    )
    scheduled_publish_at: Optional[datetime] = Field(
        default=None,
        description="Publish time; required for a scheduled article, otherwise it starts as draft"
    )


class StatusChangeRequest(BaseModel):
    """Request schema for a status change."""
    status: ArticleStatusEnum = Field(..., description="Requested status")
    reason: str = Field(default="", max_length=2000, description="Reviewer comment or reason")


class ModerationRequest(BaseModel):
    """Request schema for admin moderation actions."""
    reason: str = Field(default="", max_length=2000, description="Reviewer comment")
