"""Article routes for the REST API."""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from api.dependencies import Actor, get_engine, require_author
from api.models.article import UserRoleEnum
from api.schemas.requests import ArticleCreateRequest, StatusChangeRequest
from api.schemas.responses import ArticleResponse, ErrorResponse, TransitionResponse
from lifecycle.engine import LifecycleEngine
from lifecycle.results import TransitionOutcome, TransitionResult


router = APIRouter(prefix="/articles", tags=["articles"])

HTTP_STATUS_BY_OUTCOME = {
    TransitionOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    TransitionOutcome.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
    TransitionOutcome.INSUFFICIENT_ROLE: status.HTTP_403_FORBIDDEN,
    TransitionOutcome.CONFLICT: status.HTTP_409_CONFLICT,
}


def transition_response(result: TransitionResult, message: str = "Status updated"):
    """Map a TransitionResult to a response body or an error JSONResponse."""
    if not result.success:
        error = ErrorResponse(
            error=result.outcome.value,
            detail=result.message,
            current_status=result.from_status,
            attempted_status=result.to_status
        )
        return JSONResponse(
            status_code=HTTP_STATUS_BY_OUTCOME[result.outcome],
            content=error.model_dump()
        )

    return TransitionResponse(
        article_id=result.article_id,
        from_status=result.from_status,
        status=result.to_status,
        changed=result.changed,
        message=message if result.changed else "Status unchanged",
        article=ArticleResponse.from_document(result.article) if result.article else None
    )


@router.post(
    "",
    response_model=ArticleResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_article(
    request: ArticleCreateRequest,
    actor: Actor = Depends(require_author),
    engine: LifecycleEngine = Depends(get_engine)
):
    """
    Create an article.

    The initial status is resolved from the requested one and the actor's
    role; non-admins end up in draft or pending.
    """
    article = await engine.create_article(
        request.model_dump(),
        author_id=actor.user_id,
        actor_role=actor.role
    )
    return ArticleResponse.from_document(article)


@router.put(
    "/{article_id}/status",
    response_model=TransitionResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse},
               404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
async def change_status(
    article_id: str,
    request: StatusChangeRequest,
    actor: Actor = Depends(require_author),
    engine: LifecycleEngine = Depends(get_engine)
):
    """Request a status change on an article the actor owns (admins: any article)."""
    if actor.role != UserRoleEnum.ADMIN:
        article = await engine.article_repo.get_article(article_id)
        if not article:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Article {article_id} not found"
            )
        if article["author_id"] != actor.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to edit this article"
            )

    result = await engine.request_transition(article_id, request.status, actor.role, request.reason)
    return transition_response(result)
