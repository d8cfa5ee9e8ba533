"""Response schemas for API endpoints."""
from typing import Any, Dict, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from api.models.article import ArticleModel


class ArticleResponse(BaseModel):
    """Response schema for a single article."""
    article_id: str = Field(..., description="Unique article identifier")
    title: str = Field(..., description="Article title")
    author_id: str = Field(..., description="Owning author")
    category: Optional[str] = Field(None, description="Article category")
    status: str = Field(..., description="Current article status")
    scheduled_publish_at: Optional[datetime] = Field(None, description="Scheduled publish time")
    reviewer_comment: str = Field(default="", description="Latest reviewer comment")
    published_at: Optional[datetime] = Field(None, description="Publication timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_document(cls, article: Dict[str, Any]) -> "ArticleResponse":
        model = ArticleModel.model_validate(article)
        return cls(
            article_id=model.id,
            title=model.title,
            author_id=model.author_id,
            category=model.category,
            status=model.status.value,
            scheduled_publish_at=model.scheduled_publish_at,
            reviewer_comment=model.reviewer_comment or "",
            published_at=model.published_at,
            created_at=model.created_at,
            updated_at=model.updated_at
        )


class TransitionResponse(BaseModel):
    """Response schema for a successful status change."""
    article_id: str = Field(..., description="Unique article identifier")
    from_status: Optional[str] = Field(None, description="Status before the request")
    status: str = Field(..., description="Current article status")
    changed: bool = Field(..., description="False when the article already had this status")
    message: str = Field(..., description="Human readable outcome")
    article: Optional[ArticleResponse] = None


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    error: str = Field(..., description="Error code")
    detail: Optional[str] = Field(None, description="Detailed error information")
    current_status: Optional[str] = Field(None, description="Article status when the request was denied")
    attempted_status: Optional[str] = Field(None, description="Requested status")
