# Models module
from .article import ArticleModel, ArticleStatusEnum, UserRoleEnum
from .notification import NotificationModel, NotificationTypeEnum, LocalizedText

__all__ = [
    "ArticleModel",
    "ArticleStatusEnum",
    "UserRoleEnum",
    "NotificationModel",
    "NotificationTypeEnum",
    "LocalizedText",
]
