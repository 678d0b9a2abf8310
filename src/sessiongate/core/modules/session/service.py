import secrets
from datetime import datetime, timedelta
from uuid import UUID

import structlog

from sessiongate.core.core import Service
from sessiongate.core.modules.session.models import AuthToken, SessionCheck, SessionFailure, SessionGrant
from sessiongate.core.modules.user.models import User
from sessiongate.errors import NotFoundError

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Single-session-per-user lifecycle with sliding expiration.

    Every mutation is a read-modify-write of one user record, done while
    holding that user's lock. Expiry is evaluated lazily; nothing sweeps
    stale sessions in the background.
    """

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.core.config.session_window_seconds)

    def _now(self) -> datetime:
        return self.core.clock()

    async def issue(self, subject_id: UUID) -> SessionGrant:
        """Start a new session, replacing whatever session the user had."""
        async with self.core.locks.hold(subject_id):
            user = await self.store.get_by_subject(subject_id)
            if user is None:
                raise NotFoundError(f"User '{subject_id}' not found", code="USER_NOT_FOUND")

            token = AuthToken(secrets.token_urlsafe(32))
            expires_at = self._now() + self.window
            replaced = user.has_session
            user.session_token = token
            user.expires_at = expires_at
            await self.store.upsert(user)

        logger.info("session_issued", user_id=str(subject_id), expires_at=expires_at.isoformat(), replaced=replaced)
        return SessionGrant(token=token, expires_at=expires_at)

    async def revoke(self, subject_id: UUID) -> bool:
        """Clear the user's session. Returns False only if the user does not exist."""
        async with self.core.locks.hold(subject_id):
            user = await self.store.get_by_subject(subject_id)
            if user is None:
                return False
            self._clear(user)
            await self.store.upsert(user)

        logger.info("session_revoked", user_id=str(subject_id))
        return True

    async def inspect(self, subject_id: UUID, token: str) -> SessionCheck:
        """Check a session without refreshing it or clearing it when stale."""
        user = await self.store.get_by_subject(subject_id)
        if user is None:
            return SessionCheck.failed(SessionFailure.SUBJECT_NOT_FOUND)
        return self._evaluate(user, token)

    async def validate(self, subject_id: UUID, token: str) -> bool:
        """Read-only liveness check; never extends the session."""
        return (await self.inspect(subject_id, token)).valid

    async def validate_and_refresh(self, subject_id: UUID, token: str) -> SessionCheck:
        """Validate and, on success, slide the expiry to now + window.

        An expired session is cleared before the failure is reported, so the
        next attempt with the same token sees NO_SESSION.
        """
        async with self.core.locks.hold(subject_id):
            user = await self.store.get_by_subject(subject_id)
            if user is None:
                return SessionCheck.failed(SessionFailure.SUBJECT_NOT_FOUND)

            check = self._evaluate(user, token)
            if check.reason == SessionFailure.SESSION_EXPIRED:
                self._clear(user)
                await self.store.upsert(user)
                logger.info("session_expired_cleared", user_id=str(subject_id))
                return check
            if not check.valid:
                return check

            user.expires_at = self._now() + self.window
            await self.store.upsert(user)

        logger.debug("session_refreshed", user_id=str(subject_id), expires_at=user.expires_at.isoformat())
        return SessionCheck.ok(user.expires_at)

    def _evaluate(self, user: User, token: str) -> SessionCheck:
        # Order matters: presence before equality, equality before expiry.
        if user.session_token is None or user.expires_at is None:
            return SessionCheck.failed(SessionFailure.NO_SESSION)
        if not secrets.compare_digest(user.session_token.encode("utf-8"), token.encode("utf-8")):
            return SessionCheck.failed(SessionFailure.TOKEN_MISMATCH)
        if user.expires_at <= self._now():
            return SessionCheck.failed(SessionFailure.SESSION_EXPIRED)
        return SessionCheck.ok(user.expires_at)

    @staticmethod
    def _clear(user: User) -> None:
        user.session_token = None
        user.expires_at = None
