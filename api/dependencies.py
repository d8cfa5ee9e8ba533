"""FastAPI dependencies shared by the routers."""
from dataclasses import dataclass
from fastapi import Depends, Header, HTTPException, Request, status

from api.models.article import UserRoleEnum
from lifecycle.engine import LifecycleEngine


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as resolved by the auth layer in front of this API."""
    user_id: str
    role: UserRoleEnum


async def get_actor(
    x_user_id: str = Header(..., description="Authenticated user id"),
    x_user_role: UserRoleEnum = Header(..., description="Authenticated user role")
) -> Actor:
    """Read the caller identity forwarded by the authentication middleware."""
    return Actor(user_id=x_user_id, role=x_user_role)


async def require_author(actor: Actor = Depends(get_actor)) -> Actor:
    """Only publishers and admins write articles."""
    if actor.role not in (UserRoleEnum.PUBLISHER, UserRoleEnum.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only publishers and admins can manage articles"
        )
    return actor


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    """Only admins moderate."""
    if actor.role != UserRoleEnum.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )
    return actor


async def get_engine(request: Request) -> LifecycleEngine:
    """The process-wide lifecycle engine created at startup."""
    return request.app.state.engine
