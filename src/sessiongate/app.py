from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

from sessiongate.config import Config
from sessiongate.core.core import Core
from sessiongate.core.modules.access.models import GateDecision
from sessiongate.core.modules.session.models import SessionCheck, SessionFailure, SessionGrant
from sessiongate.core.modules.user.models import Role, User, UserView
from sessiongate.core.modules.user.store import UserStore
from sessiongate.errors import NotFoundError, ValidationError
from sessiongate.utils import now


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config, store: UserStore | None = None, clock: Callable[[], datetime] = now) -> None:
        self._core = Core(config, store=store, clock=clock)

    @property
    def config(self) -> Config:
        return self._core.config

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def evaluate_request(self, path: str, identity: str | None, token: str | None) -> GateDecision:
        """Gate decision for an inbound request; refreshes the session when it passes."""
        return await self._core.services.access.evaluate(path, identity, token)

    async def login(self, username: str, password: str) -> tuple[UserView, SessionGrant]:
        """Authenticate user and start a session, replacing any previous one."""
        user = await self._core.services.user.authenticate(username, password)
        grant = await self._core.services.session.issue(user.id)
        user.expires_at = grant.expires_at
        return UserView.from_domain(user), grant

    async def logout(self, username: str) -> None:
        """End the user's session."""
        user = await self._core.services.user.get_user_by_username(username)
        if not await self._core.services.session.revoke(user.id):
            raise NotFoundError(f"User '{username}' not found", code="USER_NOT_FOUND")

    async def check_session(self, identity: str, token: str) -> tuple[UserView, SessionCheck]:
        """Report session liveness without extending it."""
        user = await self._core.services.user.find_user(identity)
        if user is None:
            raise NotFoundError(f"User '{identity}' not found", code="USER_NOT_FOUND")
        check = await self._core.services.session.inspect(user.id, token)
        if check.reason == SessionFailure.SUBJECT_NOT_FOUND:
            raise NotFoundError(f"User '{identity}' not found", code="USER_NOT_FOUND")
        return UserView.from_domain(user), check

    async def get_all_users(self) -> list[UserView]:
        users = await self._core.services.user.get_all_users()
        return [UserView.from_domain(user) for user in users]

    async def get_user(self, user_id: UUID) -> UserView:
        user = await self._core.services.user.get_user(user_id)
        return UserView.from_domain(user)

    async def create_user(self, current_user: User, username: str, password: str, role: Role) -> UserView:
        """Create a new user (admin only)."""
        self._core.services.access.ensure_admin(current_user)
        user = await self._core.services.user.create_user(username, password, role)
        return UserView.from_domain(user)

    async def delete_user(self, current_user: User, user_id: UUID) -> None:
        """Delete a user (admin only, cannot delete self)."""
        self._core.services.access.ensure_admin(current_user)
        if user_id == current_user.id:
            raise ValidationError("Cannot delete yourself", code="DELETE_FAILED")
        await self._core.services.user.delete_user(user_id)

    async def change_password(self, current_user: User, old_password: str, new_password: str) -> None:
        """Change password for current user."""
        await self._core.services.user.change_password(current_user.id, old_password, new_password)
