"""Admin moderation routes. Every action goes through the lifecycle engine."""
from typing import Optional
from fastapi import APIRouter, Depends

from api.dependencies import Actor, get_engine, require_admin
from api.models.article import ArticleStatusEnum
from api.routes.articles import transition_response
from api.schemas.requests import ModerationRequest
from api.schemas.responses import ErrorResponse, TransitionResponse
from lifecycle.engine import LifecycleEngine


router = APIRouter(prefix="/admin/articles", tags=["admin"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _reason(request: Optional[ModerationRequest]) -> str:
    return request.reason if request else ""


@router.put("/{article_id}/approve", response_model=TransitionResponse, responses=ERROR_RESPONSES)
async def approve_article(
    article_id: str,
    request: Optional[ModerationRequest] = None,
    actor: Actor = Depends(require_admin),
    engine: LifecycleEngine = Depends(get_engine)
):
    """Approve and publish an article."""
    result = await engine.request_transition(
        article_id, ArticleStatusEnum.PUBLISHED, actor.role, _reason(request)
    )
    return transition_response(result, "Article approved and published")


@router.put("/{article_id}/reject", response_model=TransitionResponse, responses=ERROR_RESPONSES)
async def reject_article(
    article_id: str,
    request: Optional[ModerationRequest] = None,
    actor: Actor = Depends(require_admin),
    engine: LifecycleEngine = Depends(get_engine)
):
    """Reject an article."""
    result = await engine.request_transition(
        article_id, ArticleStatusEnum.REJECTED, actor.role, _reason(request)
    )
    return transition_response(result, "Article rejected")


@router.put("/{article_id}/flag", response_model=TransitionResponse, responses=ERROR_RESPONSES)
async def flag_article(
    article_id: str,
    request: Optional[ModerationRequest] = None,
    actor: Actor = Depends(require_admin),
    engine: LifecycleEngine = Depends(get_engine)
):
    """Flag an article for revision."""
    result = await engine.request_transition(
        article_id, ArticleStatusEnum.FLAGGED, actor.role, _reason(request)
    )
    return transition_response(result, "Article flagged for revision")


@router.put("/{article_id}/unpublish", response_model=TransitionResponse, responses=ERROR_RESPONSES)
async def unpublish_article(
    article_id: str,
    request: Optional[ModerationRequest] = None,
    actor: Actor = Depends(require_admin),
    engine: LifecycleEngine = Depends(get_engine)
):
    """Return a published article to draft."""
    result = await engine.request_transition(
        article_id, ArticleStatusEnum.DRAFT, actor.role, _reason(request)
    )
    return transition_response(result, "Article unpublished")
