"""Transition policy tests."""
import pytest
from api.models.article import ArticleStatusEnum as Status, UserRoleEnum as Role
from lifecycle.policy import (
    SCHEDULER_AUTHORITY, STATUS_TRANSITIONS, decide, is_allowed, resolve_create_status
)
from lifecycle.results import TransitionOutcome


ALL_PAIRS = [(current, requested) for current in Status for requested in Status]
ADJACENT_PAIRS = [(c, r) for c, r in ALL_PAIRS if r in STATUS_TRANSITIONS[c]]
NON_ADJACENT_PAIRS = [(c, r) for c, r in ALL_PAIRS if r not in STATUS_TRANSITIONS[c]]


class TestDecide:
    """Tests for decide()."""

    def test_adjacency_table_covers_every_status(self):
        """Test every status has an adjacency entry containing itself."""
        assert set(STATUS_TRANSITIONS) == set(Status)
        for status, targets in STATUS_TRANSITIONS.items():
            assert status in targets

    @pytest.mark.parametrize("role", list(Role))
    def test_self_transition_always_allowed(self, role):
        """Test s -> s is allowed for every status and role."""
        for status in Status:
            assert decide(status, status, role).allowed

    @pytest.mark.parametrize("role", list(Role))
    def test_non_adjacent_pairs_are_invalid_for_every_role(self, role):
        """Test pairs outside the table are InvalidTransition regardless of role."""
        for current, requested in NON_ADJACENT_PAIRS:
            decision = decide(current, requested, role)
            assert decision.outcome == TransitionOutcome.INVALID_TRANSITION
            assert current.value in decision.message
            assert requested.value in decision.message

    def test_publisher_cannot_request_moderation_statuses(self):
        """Test publisher gets InsufficientRole for published/rejected/flagged."""
        moderation = {Status.PUBLISHED, Status.REJECTED, Status.FLAGGED}
        checked = 0
        for current, requested in ADJACENT_PAIRS:
            if requested in moderation and current != requested:
                decision = decide(current, requested, Role.PUBLISHER)
                assert decision.outcome == TransitionOutcome.INSUFFICIENT_ROLE
                checked += 1
        assert checked > 0

    def test_admin_gets_full_adjacency_table(self):
        """Test admin may take any adjacent transition."""
        for current, requested in ADJACENT_PAIRS:
            assert decide(current, requested, Role.ADMIN).allowed

    def test_publisher_may_submit_and_withdraw(self):
        """Test publisher can move draft <-> pending style transitions."""
        assert decide("draft", "pending", "publisher").allowed
        assert decide("rejected", "pending", "publisher").allowed
        assert decide("flagged", "draft", "publisher").allowed
        assert decide("scheduled", "draft", "publisher").allowed

    def test_publisher_flagged_to_published_is_role_denial(self):
        """Test the adjacency-legal flagged -> published is denied by role."""
        decision = decide("flagged", "published", "publisher")
        assert decision.outcome == TransitionOutcome.INSUFFICIENT_ROLE
        assert "publish" in decision.message.lower()

    def test_reader_denied_for_any_change(self):
        """Test reader gets InsufficientRole on adjacency-legal changes."""
        for current, requested in ADJACENT_PAIRS:
            if current != requested:
                assert decide(current, requested, Role.READER).outcome == TransitionOutcome.INSUFFICIENT_ROLE

    def test_unknown_status_is_invalid(self):
        """Test strings outside the enum are rejected."""
        assert decide("draft", "archived", "admin").outcome == TransitionOutcome.INVALID_TRANSITION
        assert decide("bogus", "draft", "admin").outcome == TransitionOutcome.INVALID_TRANSITION

    def test_unknown_role_denied(self):
        """Test an unrecognised role cannot change status."""
        assert decide("pending", "published", "superuser").outcome == TransitionOutcome.INSUFFICIENT_ROLE

    def test_scheduler_may_publish_scheduled(self):
        """Test the scheduler authority admits scheduled -> published."""
        assert decide("scheduled", "published", SCHEDULER_AUTHORITY).allowed

    @pytest.mark.parametrize("role", list(Role))
    def test_people_cannot_publish_scheduled(self, role):
        """Test no request role can take scheduled -> published itself."""
        decision = decide("scheduled", "published", role)
        assert decision.outcome == TransitionOutcome.INVALID_TRANSITION

    def test_scheduler_limited_to_promotion(self):
        """Test the scheduler authority can do nothing besides publishing scheduled articles."""
        for current, requested in ALL_PAIRS:
            if current == requested or (current, requested) == (Status.SCHEDULED, Status.PUBLISHED):
                continue
            decision = decide(current, requested, SCHEDULER_AUTHORITY)
            assert decision.outcome == TransitionOutcome.INSUFFICIENT_ROLE

    def test_scheduler_authority_is_not_a_request_role(self):
        assert SCHEDULER_AUTHORITY not in {role.value for role in Role}

    def test_is_allowed_shorthand(self):
        """Test is_allowed mirrors decide()."""
        assert is_allowed("pending", "published", "admin")
        assert not is_allowed("draft", "published", "admin")


class TestResolveCreateStatus:
    """Tests for resolve_create_status()."""

    def test_publisher_published_becomes_draft(self):
        """Test publisher cannot create a published article."""
        assert resolve_create_status("published", "publisher") == Status.DRAFT

    def test_publisher_pending_is_kept(self):
        """Test publisher may submit straight to review."""
        assert resolve_create_status("pending", "publisher") == Status.PENDING

    def test_publisher_scheduled_becomes_draft(self):
        """Test only admins may create scheduled articles."""
        assert resolve_create_status("scheduled", "publisher") == Status.DRAFT

    def test_admin_scheduled_is_kept(self):
        """Test admin may create a scheduled article."""
        assert resolve_create_status("scheduled", "admin") == Status.SCHEDULED

    def test_admin_published_becomes_draft(self):
        """Test publication never happens at creation, even for admins."""
        assert resolve_create_status("published", "admin") == Status.DRAFT

    def test_missing_status_defaults_to_draft(self):
        """Test no requested status means draft."""
        assert resolve_create_status(None, "admin") == Status.DRAFT
        assert resolve_create_status(None, "publisher") == Status.DRAFT

    @pytest.mark.parametrize("role", list(Role))
    def test_never_published(self, role):
        """Test no role resolves to published for any request."""
        for requested in list(Status) + [None, "junk"]:
            assert resolve_create_status(requested, role) != Status.PUBLISHED
