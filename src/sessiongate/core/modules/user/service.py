from uuid import UUID

import bcrypt
import structlog

from sessiongate.core.core import Service
from sessiongate.core.modules.user.models import Role, User
from sessiongate.core.modules.user.validators import validate_password, validate_username
from sessiongate.errors import AuthenticationError, NotFoundError, ValidationError
from sessiongate.utils import parse_uuid

logger = structlog.get_logger(__name__)


class UserService(Service):
    """Manages user records and credentials."""

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID."""
        user = await self.store.get_by_subject(user_id)
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found", code="USER_NOT_FOUND")
        return user

    async def get_user_by_username(self, username: str) -> User:
        """Get user by username."""
        user = await self.store.get_by_name(username)
        if user is None:
            raise NotFoundError(f"User '{username}' not found", code="USER_NOT_FOUND")
        return user

    async def find_user(self, identity: str) -> User | None:
        """Resolve an identity header value, either a subject id or a username."""
        user_id = parse_uuid(identity)
        if user_id is not None:
            user = await self.store.get_by_subject(user_id)
            if user is not None:
                return user
        return await self.store.get_by_name(identity)

    async def has_username(self, username: str) -> bool:
        return await self.store.get_by_name(username) is not None

    async def get_all_users(self) -> list[User]:
        users = await self.store.list_all()
        return sorted(users, key=lambda u: u.created_at)

    async def create_user(self, username: str, password: str, role: Role = "user") -> User:
        """Create user with hashed password."""
        validate_username(username)
        validate_password(password)
        async with self.core.locks.hold(("username", username)):
            if await self.has_username(username):
                raise ValidationError(f"User '{username}' already exists", code="USER_EXISTS")
            user = User(username=username, password_hash=self._hash_password(password), role=role)
            await self.store.upsert(user)
        logger.info("user_created", user_id=str(user.id), username=username, role=role)
        return user

    def verify_password(self, user: User, password: str) -> bool:
        """Verify password against stored hash."""
        return bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8"))

    async def authenticate(self, username: str, password: str) -> User:
        """Return the user if the credentials match."""
        user = await self.get_user_by_username(username)
        if not self.verify_password(user, password):
            logger.info("login_rejected", username=username)
            raise AuthenticationError("Invalid password", code="INVALID_PASSWORD")
        return user

    async def change_password(self, user_id: UUID, old_password: str, new_password: str) -> None:
        """Change user password after verifying current password."""
        async with self.core.locks.hold(user_id):
            user = await self.get_user(user_id)
            if not self.verify_password(user, old_password):
                raise AuthenticationError("Invalid current password", code="INVALID_CURRENT_PASSWORD")

            validate_password(new_password)
            user.password_hash = self._hash_password(new_password)
            await self.store.upsert(user)
        logger.info("password_changed", user_id=str(user_id))

    async def delete_user(self, user_id: UUID) -> None:
        """Delete a user from the system."""
        async with self.core.locks.hold(user_id):
            if not await self.store.delete(user_id):
                raise NotFoundError(f"User '{user_id}' not found", code="USER_NOT_FOUND")
        logger.info("user_deleted", user_id=str(user_id))

    async def ensure_admin_user_exists(self) -> None:
        """Create default admin user if not exists."""
        config = self.core.config
        if not await self.has_username(config.admin_username):
            await self.create_user(config.admin_username, config.admin_password, role="admin")

    async def on_start(self) -> None:
        """Bootstrap the admin account."""
        await self.ensure_admin_user_exists()
        logger.debug("user_service_started")

    def _hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.core.config.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")
