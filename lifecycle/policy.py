"""
Article status transition policy.

Pure decision functions: no I/O, no side effects. The adjacency table says
which status can follow which, independent of the actor; the role overlay
then narrows what publishers and readers may request.
"""
from typing import Dict, FrozenSet, Optional, Union

from api.models.article import ArticleStatusEnum as Status, UserRoleEnum as Role
from lifecycle.results import Decision


STATUS_TRANSITIONS: Dict[Status, FrozenSet[Status]] = {
    Status.DRAFT: frozenset({Status.DRAFT, Status.PENDING}),
    Status.PENDING: frozenset({Status.PENDING, Status.PUBLISHED, Status.REJECTED, Status.FLAGGED}),
    Status.PUBLISHED: frozenset({Status.PUBLISHED, Status.FLAGGED, Status.DRAFT}),
    Status.REJECTED: frozenset({Status.REJECTED, Status.DRAFT, Status.PENDING}),
    Status.FLAGGED: frozenset({
        Status.FLAGGED, Status.PENDING, Status.PUBLISHED, Status.REJECTED, Status.DRAFT
    }),
    Status.SCHEDULED: frozenset({Status.SCHEDULED, Status.DRAFT, Status.PENDING}),
}

PUBLISHER_TARGETS: FrozenSet[Status] = frozenset({Status.DRAFT, Status.PENDING})
ADMIN_CREATE_STATUSES: FrozenSet[Status] = frozenset({Status.DRAFT, Status.PENDING, Status.SCHEDULED})

# Authority used by the scheduled-publication loop. It is not a UserRoleEnum
# member, so no request header can carry it.
SCHEDULER_AUTHORITY = "scheduler"
SCHEDULED_PROMOTION = (Status.SCHEDULED, Status.PUBLISHED)


def _coerce_status(value: Union[str, Status, None]) -> Optional[Status]:
    try:
        return Status(value)
    except ValueError:
        return None


def _coerce_role(value: Union[str, Role, None]) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


def _label(value) -> str:
    return value.value if isinstance(value, Status) else str(value)


def decide(
    current_status: Union[str, Status],
    requested_status: Union[str, Status],
    actor_role: Union[str, Role]
) -> Decision:
    """
    Decide whether actor_role may move an article from current_status to
    requested_status.

    scheduled -> published is outside the adjacency table and is only
    admitted for SCHEDULER_AUTHORITY, which may do nothing else.

    Returns Decision.allow(), or a denial tagged INVALID_TRANSITION (the pair
    is not in the adjacency table) or INSUFFICIENT_ROLE (the pair is legal but
    this role may not request it).
    """
    current = _coerce_status(current_status)
    requested = _coerce_status(requested_status)
    if current is None or requested is None:
        return Decision.invalid(
            f"Invalid status transition: {_label(current_status)} -> {_label(requested_status)}"
        )

    if current == requested:
        return Decision.allow()

    if actor_role == SCHEDULER_AUTHORITY:
        if (current, requested) == SCHEDULED_PROMOTION:
            return Decision.allow()
        return Decision.insufficient_role("The scheduler may only publish scheduled articles")

    if requested not in STATUS_TRANSITIONS[current]:
        return Decision.invalid(f"Invalid status transition: {current.value} -> {requested.value}")

    role = _coerce_role(actor_role)
    if role == Role.ADMIN:
        return Decision.allow()

    if role == Role.PUBLISHER:
        if requested == Status.PUBLISHED:
            return Decision.insufficient_role(
                "Publishers cannot directly publish articles. Submit for review (pending) instead."
            )
        if requested in (Status.REJECTED, Status.FLAGGED):
            return Decision.insufficient_role("Only admins can reject or flag articles")
        if requested not in PUBLISHER_TARGETS:
            return Decision.insufficient_role("Publishers can only set status to 'draft' or 'pending'")
        return Decision.allow()

    # Readers (and anything unrecognised) never change status.
    return Decision.insufficient_role("Your role does not permit changing article status")


def is_allowed(current_status, requested_status, actor_role) -> bool:
    """Shorthand for decide(...).allowed."""
    return decide(current_status, requested_status, actor_role).allowed


def resolve_create_status(
    requested_status: Union[str, Status, None],
    actor_role: Union[str, Role]
) -> Status:
    """
    Resolve the status a newly created article starts in.

    Admins may create draft, pending or scheduled articles; everyone else gets
    pending if they asked for it and draft otherwise. Published is never a
    creation status for any role.
    """
    requested = _coerce_status(requested_status)

    if _coerce_role(actor_role) == Role.ADMIN:
        return requested if requested in ADMIN_CREATE_STATUSES else Status.DRAFT

    if requested == Status.PENDING:
        return Status.PENDING
    return Status.DRAFT
