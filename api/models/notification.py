"""Notification model definitions."""
from enum import Enum
from typing import Dict, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class NotificationTypeEnum(str, Enum):
    """Notification type enumeration."""
    NEW_ARTICLE = "new_article"
    ARTICLE_APPROVED = "article_approved"
    ARTICLE_REJECTED = "article_rejected"
    ARTICLE_FLAGGED = "article_flagged"
    ARTICLE_PUBLISHED = "article_published"
    NEW_SUBSCRIBER = "new_subscriber"
    NEW_COMMENT = "new_comment"
    NEW_LIKE = "new_like"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


class LocalizedText(BaseModel):
    """Title and message in a single locale."""
    title: str
    message: str


class NotificationModel(BaseModel):
    """Notification model for database representation."""
    id: str = Field(alias="_id")
    recipient_id: str
    sender_id: Optional[str] = None
    type: NotificationTypeEnum
    title: str
    message: str
    translations: Dict[str, LocalizedText] = Field(default_factory=dict)
    related_article_id: Optional[str] = None
    related_user_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime

    class Config:
        populate_by_name = True
