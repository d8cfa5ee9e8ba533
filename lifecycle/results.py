"""Tagged results returned by the transition policy and the lifecycle engine."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TransitionOutcome(str, Enum):
    """Outcome of a requested status change."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    INSUFFICIENT_ROLE = "insufficient_role"
    CONFLICT = "conflict"


CONFLICT_MESSAGE = "This article was just changed by someone else, please refresh."


@dataclass(frozen=True)
class Decision:
    """Result of a policy check: allowed, or denied with a reason."""
    outcome: TransitionOutcome
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == TransitionOutcome.SUCCESS

    @classmethod
    def allow(cls) -> "Decision":
        return cls(TransitionOutcome.SUCCESS)

    @classmethod
    def invalid(cls, message: str) -> "Decision":
        return cls(TransitionOutcome.INVALID_TRANSITION, message)

    @classmethod
    def insufficient_role(cls, message: str) -> "Decision":
        return cls(TransitionOutcome.INSUFFICIENT_ROLE, message)


@dataclass
class TransitionResult:
    """Result of LifecycleEngine.request_transition."""
    outcome: TransitionOutcome
    article_id: str
    article: Optional[Dict[str, Any]] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    message: Optional[str] = None
    changed: bool = False

    @property
    def success(self) -> bool:
        return self.outcome == TransitionOutcome.SUCCESS

    @property
    def retryable(self) -> bool:
        """Only optimistic-concurrency losses are worth re-reading and retrying."""
        return self.outcome == TransitionOutcome.CONFLICT
