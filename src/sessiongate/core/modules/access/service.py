import re
from functools import cached_property

import structlog

from sessiongate.core.core import Service
from sessiongate.core.modules.access.models import GateDecision, GateState, RejectionCode, RouteKind
from sessiongate.core.modules.session.models import SessionFailure
from sessiongate.core.modules.user.models import User
from sessiongate.errors import AccessDeniedError

logger = structlog.get_logger(__name__)


class AccessService(Service):
    """Decides whether a request may reach protected handlers."""

    @cached_property
    def _public_patterns(self) -> list[re.Pattern[str]]:
        return [re.compile(pattern) for pattern in self.core.config.public_paths]

    def classify(self, path: str) -> RouteKind:
        """Public patterns are tried in order; unmatched paths under the protected prefix need auth."""
        if any(pattern.search(path) for pattern in self._public_patterns):
            return RouteKind.PUBLIC
        if path.startswith(self.core.config.protected_prefix):
            return RouteKind.PROTECTED
        return RouteKind.PUBLIC

    async def evaluate(self, path: str, identity: str | None, token: str | None) -> GateDecision:
        """Evaluate one request exactly once. Refreshes the session on success."""
        if self.classify(path) is RouteKind.PUBLIC:
            return GateDecision(state=GateState.PUBLIC)

        if not identity:
            return self._reject(GateState.PROTECTED_MISSING_CREDS, RejectionCode.UNAUTHORIZED, path, identity)
        if not token:
            return self._reject(GateState.PROTECTED_MISSING_CREDS, RejectionCode.NO_SESSION_TOKEN, path, identity)

        user = await self.core.services.user.find_user(identity)
        if user is None:
            reason = SessionFailure.SUBJECT_NOT_FOUND
            return self._reject(GateState.PROTECTED_INVALID, RejectionCode.SESSION_EXPIRED, path, identity, reason)

        check = await self.core.services.session.validate_and_refresh(user.id, token)

        if not check.valid:
            if check.reason == SessionFailure.TOKEN_MISMATCH:
                code = RejectionCode.SESSION_REPLACED
            else:
                code = RejectionCode.SESSION_EXPIRED
            return self._reject(GateState.PROTECTED_INVALID, code, path, identity, check.reason)

        user.expires_at = check.expires_at
        return GateDecision(state=GateState.PROTECTED_VALID, user=user, expires_at=check.expires_at)

    def ensure_admin(self, user: User) -> None:
        """Raise AccessDeniedError unless the user is an admin."""
        if user.role != "admin":
            raise AccessDeniedError("Admin privileges required")

    @staticmethod
    def _reject(
        state: GateState,
        code: RejectionCode,
        path: str,
        identity: str | None,
        reason: SessionFailure | None = None,
    ) -> GateDecision:
        logger.info("gate_rejected", path=path, identity=identity, code=code.value, reason=reason)
        return GateDecision(state=state, code=code)
