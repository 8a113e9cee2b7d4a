"""
Access control evaluator tests
"""
from datetime import timedelta

import pytest
from jose import jwt

from clubcore.core.errors import ACCESS_DENIED_MESSAGE, AuthorizationError, NotFoundError
from clubcore.core.security import ALGORITHM, Actor, Role, create_access_token, verify_token
from clubcore.core.settings import settings
from clubcore.services.access_control import (
    Action,
    Resource,
    authorize,
    deny_missing,
    ensure_authorized,
    ensure_same_club,
    load_parent_links,
)

from conftest import link_parent

ADMIN = Actor(id="a", role=Role.ADMIN)
COACH_A = Actor(id="c", role=Role.COACH, club_id="club-a")
ATHLETE = Actor(id="ath-1", role=Role.ATHLETE, club_id="club-a")
PARENT = Actor(id="p", role=Role.PARENT, club_id="club-a")


class TestAdmin:
    """Admins pass every check"""

    @pytest.mark.parametrize("action", list(Action))
    def test_admin_allowed_everywhere(self, action):
        decision = authorize(ADMIN, action, Resource(club_id="club-z", athlete_id="someone"))
        assert decision.allowed

    def test_admin_needs_no_club(self):
        assert ADMIN.club_id is None
        assert ADMIN.is_admin


class TestCoach:
    """Coaches are scoped to their own club"""

    @pytest.mark.parametrize("action", [Action.VIEW, Action.REVIEW])
    def test_own_club_allowed(self, action):
        assert authorize(COACH_A, action, Resource(club_id="club-a", athlete_id="x")).allowed

    @pytest.mark.parametrize("action", list(Action))
    def test_other_club_denied_for_every_action(self, action):
        decision = authorize(COACH_A, action, Resource(club_id="club-b", athlete_id="x"))
        assert not decision.allowed
        assert decision.reason == ACCESS_DENIED_MESSAGE

    def test_coach_cannot_check_in(self):
        assert not authorize(COACH_A, Action.CHECK_IN, Resource(club_id="club-a", athlete_id="c")).allowed

    def test_coach_requires_club(self):
        with pytest.raises(ValueError):
            Actor(id="c", role=Role.COACH)


class TestAthlete:
    """Athletes act only on resources they are the subject of"""

    @pytest.mark.parametrize(
        "action", [Action.VIEW, Action.SUBMIT, Action.CHECK_IN, Action.REQUEST_LEAVE]
    )
    def test_own_resource_allowed(self, action):
        assert authorize(ATHLETE, action, Resource(club_id="club-a", athlete_id="ath-1")).allowed

    def test_someone_elses_resource_denied(self):
        assert not authorize(ATHLETE, Action.VIEW, Resource(club_id="club-a", athlete_id="ath-2")).allowed

    def test_athlete_cannot_review(self):
        assert not authorize(ATHLETE, Action.REVIEW, Resource(club_id="club-a", athlete_id="ath-1")).allowed

    def test_same_club_required_for_sessions(self):
        ensure_same_club(ATHLETE, "club-a")
        with pytest.raises(AuthorizationError):
            ensure_same_club(ATHLETE, "club-b")

    def test_applicant_without_club_is_valid_actor(self):
        applicant = Actor(id="new", role=Role.ATHLETE)
        assert authorize(applicant, Action.SUBMIT, Resource(club_id="club-a", athlete_id="new")).allowed


class TestParent:
    """Parents follow verified, active connections"""

    def test_linked_athlete_allowed(self):
        resource = Resource(club_id="club-a", athlete_id="ath-1")
        assert authorize(PARENT, Action.VIEW, resource, frozenset({"ath-1"})).allowed

    def test_unlinked_athlete_denied(self):
        resource = Resource(club_id="club-a", athlete_id="ath-2")
        assert not authorize(PARENT, Action.VIEW, resource, frozenset({"ath-1"})).allowed

    def test_parent_cannot_mutate(self):
        resource = Resource(club_id="club-a", athlete_id="ath-1")
        for action in (Action.SUBMIT, Action.REVIEW, Action.CHECK_IN, Action.REQUEST_LEAVE):
            assert not authorize(PARENT, action, resource, frozenset({"ath-1"})).allowed

    @pytest.mark.asyncio
    async def test_only_verified_active_links_loaded(self, db, parent):
        await link_parent(db, parent, Actor(id="kid-verified", role=Role.ATHLETE))
        await link_parent(db, parent, Actor(id="kid-unverified", role=Role.ATHLETE), verified=False)
        await link_parent(db, parent, Actor(id="kid-inactive", role=Role.ATHLETE), active=False)

        links = await load_parent_links(db, parent)

        assert links == frozenset({"kid-verified"})

    @pytest.mark.asyncio
    async def test_non_parents_have_no_links(self, db, coach):
        assert await load_parent_links(db, coach) == frozenset()


class TestErrors:
    """Denials never reveal existence"""

    def test_ensure_authorized_raises(self):
        with pytest.raises(AuthorizationError) as exc_info:
            ensure_authorized(COACH_A, Action.REVIEW, Resource(club_id="club-b"))
        assert exc_info.value.message == ACCESS_DENIED_MESSAGE

    def test_missing_resource_looks_like_denial_for_non_admins(self):
        assert isinstance(deny_missing(COACH_A), AuthorizationError)
        assert isinstance(deny_missing(ATHLETE), AuthorizationError)
        assert isinstance(deny_missing(ADMIN), NotFoundError)


class TestTokens:
    """Bearer tokens carry the actor claims"""

    def test_round_trip(self):
        token = create_access_token(COACH_A)
        assert verify_token(token) == COACH_A

    def test_wrong_secret_rejected(self):
        token = create_access_token(COACH_A, secret_key="someone-else")
        assert verify_token(token) is None

    def test_expired_token_rejected(self):
        token = create_access_token(COACH_A, expires_delta=timedelta(minutes=-1))
        assert verify_token(token) is None

    def test_coach_token_without_club_rejected(self):
        token = jwt.encode({"sub": "c", "role": "coach"}, settings.secret_key, algorithm=ALGORITHM)
        assert verify_token(token) is None
