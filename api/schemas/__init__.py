# Schemas module
from .requests import ArticleCreateRequest, StatusChangeRequest, ModerationRequest
from .responses import (
    ArticleResponse,
    TransitionResponse,
    ErrorResponse
)

__all__ = [
    "ArticleCreateRequest",
    "StatusChangeRequest",
    "ModerationRequest",
    "ArticleResponse",
    "TransitionResponse",
    "ErrorResponse"
]
