"""Tests for request classification and gate decisions."""

from datetime import timedelta

import pytest

from sessiongate.core.modules.access.models import GateState, RejectionCode, RouteKind
from sessiongate.errors import AccessDeniedError

pytestmark = pytest.mark.asyncio


class TestClassify:
    @pytest.mark.parametrize(
        "path",
        ["/", "/login", "/health", "/api/auth/login", "/api/auth/logout", "/api/auth/session", "/dashboard", "/loginx"],
    )
    async def test_public_paths(self, core, path):
        assert core.services.access.classify(path) is RouteKind.PUBLIC

    @pytest.mark.parametrize(
        "path",
        ["/api/users", "/api/profile", "/api/auth/change-password", "/api/auth/login/extra", "/api/anything"],
    )
    async def test_protected_paths(self, core, path):
        assert core.services.access.classify(path) is RouteKind.PROTECTED


class TestEvaluate:
    async def test_public_path_needs_no_credentials(self, core):
        decision = await core.services.access.evaluate("/api/auth/login", None, None)
        assert decision.state is GateState.PUBLIC
        assert decision.allowed

    async def test_missing_identity(self, core):
        decision = await core.services.access.evaluate("/api/users", None, "token")
        assert decision.state is GateState.PROTECTED_MISSING_CREDS
        assert decision.code is RejectionCode.UNAUTHORIZED
        assert not decision.allowed

    async def test_missing_both(self, core):
        decision = await core.services.access.evaluate("/api/users", None, None)
        assert decision.code is RejectionCode.UNAUTHORIZED

    async def test_missing_token(self, core, alice):
        decision = await core.services.access.evaluate("/api/users", "alice", None)
        assert decision.state is GateState.PROTECTED_MISSING_CREDS
        assert decision.code is RejectionCode.NO_SESSION_TOKEN

    async def test_unknown_identity(self, core):
        decision = await core.services.access.evaluate("/api/users", "carol", "token")
        assert decision.state is GateState.PROTECTED_INVALID
        assert decision.code is RejectionCode.SESSION_EXPIRED

    async def test_no_session(self, core, alice):
        decision = await core.services.access.evaluate("/api/users", "alice", "token")
        assert decision.code is RejectionCode.SESSION_EXPIRED

    async def test_replaced_session(self, core, alice):
        first = await core.services.session.issue(alice.id)
        await core.services.session.issue(alice.id)

        decision = await core.services.access.evaluate("/api/users", "alice", first.token)
        assert decision.state is GateState.PROTECTED_INVALID
        assert decision.code is RejectionCode.SESSION_REPLACED

    async def test_expired_session(self, core, alice, clock):
        grant = await core.services.session.issue(alice.id)
        clock.advance(31)

        decision = await core.services.access.evaluate("/api/users", "alice", grant.token)
        assert decision.code is RejectionCode.SESSION_EXPIRED

    async def test_valid_session_is_refreshed(self, core, alice, clock):
        grant = await core.services.session.issue(alice.id)
        clock.advance(10)

        decision = await core.services.access.evaluate("/api/users", "alice", grant.token)
        assert decision.state is GateState.PROTECTED_VALID
        assert decision.allowed
        assert decision.user is not None and decision.user.id == alice.id
        assert decision.expires_at == clock() + timedelta(seconds=30)
        assert decision.user.expires_at == decision.expires_at

    async def test_identity_may_be_subject_id(self, core, alice):
        grant = await core.services.session.issue(alice.id)
        decision = await core.services.access.evaluate("/api/users", str(alice.id), grant.token)
        assert decision.state is GateState.PROTECTED_VALID

    async def test_session_check_path_is_not_refreshed(self, core, alice, clock):
        grant = await core.services.session.issue(alice.id)
        clock.advance(10)

        decision = await core.services.access.evaluate("/api/auth/session", "alice", grant.token)
        assert decision.state is GateState.PUBLIC
        record = await core.store.get_by_subject(alice.id)
        assert record.expires_at == grant.expires_at


class TestEnsureAdmin:
    async def test_admin_passes(self, core):
        admin = await core.services.user.get_user_by_username("admin")
        core.services.access.ensure_admin(admin)

    async def test_regular_user_denied(self, core, alice):
        with pytest.raises(AccessDeniedError):
            core.services.access.ensure_admin(alice)
