"""User service: accounts, profiles and login."""

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.permissions import UserRole
from learnhub.auth.security import create_access_token, hash_password, verify_password
from learnhub.auth.session import SessionContext
from learnhub.config.settings import get_settings
from learnhub.core.database.errors import storage_guard
from learnhub.core.dates import utc_now
from learnhub.core.exceptions import (
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from learnhub.users.models import User
from learnhub.users.schemas import (
    CreateUserRequest,
    UpdateProfileRequest,
    UpdateUserRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class UserNotFoundError(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class EmailExistsError(ConflictError):
    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "email_exists")


class InvalidCredentialsError(NotAuthenticatedError):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class UserInactiveError(PermissionDeniedError):
    def __init__(self, message: str = "Account is inactive"):
        super().__init__(message, "user_inactive")


# ==============================================================================
# User Service
# ==============================================================================


class UserService:
    """Account management backed by ``users`` and ``users_by_email``."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {ks}.users WHERE id = ?"
        )
        self._get_user_id_by_email = self.session.prepare(
            f"SELECT user_id FROM {ks}.users_by_email WHERE email = ?"
        )
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {ks}.users_by_email (email, user_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)
        self._release_email = self.session.prepare(
            f"DELETE FROM {ks}.users_by_email WHERE email = ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {ks}.users
            (id, email, password_hash, first_name, last_name, avatar_url,
             role, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_user = self.session.prepare(f"""
            UPDATE {ks}.users
            SET first_name = ?, last_name = ?, avatar_url = ?, role = ?,
                is_active = ?, password_hash = ?, updated_at = ?
            WHERE id = ?
        """)
        self._delete_user = self.session.prepare(
            f"DELETE FROM {ks}.users WHERE id = ?"
        )
        self._list_users = self.session.prepare(f"SELECT * FROM {ks}.users")

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_user(self, user_id: UUID) -> User | None:
        rows = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = rows.one()
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        rows = await self.session.aexecute(
            self._get_user_id_by_email, [email.lower().strip()]
        )
        row = rows.one()
        if not row:
            return None
        return await self.get_user(row.user_id)

    async def list_users(self) -> list[User]:
        """All users, newest first."""
        rows = await self.session.aexecute(self._list_users)
        users = [User.from_row(row) for row in rows]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    async def list_active_user_ids(self) -> list[UUID]:
        return [u.id for u in await self.list_users() if u.is_active]

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.get_user(user_id)
        if not user:
            raise UserNotFoundError
        return user

    # ==========================================================================
    # Login
    # ==========================================================================

    async def authenticate(self, email: str, password: str) -> User:
        """Verify credentials, upgrading the stored hash when needed.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            UserInactiveError: Account deactivated by an admin
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.warning("login_failed", user_id=str(user.id))
            raise InvalidCredentialsError
        if not user.is_active:
            raise UserInactiveError

        if new_hash:
            user.password_hash = new_hash
            await self._save(user)

        logger.info("login_succeeded", user_id=str(user.id))
        return user

    def issue_token(self, user: User) -> tuple[str, int]:
        """Return (access_token, expires_in_seconds) for a user."""
        minutes = get_settings().auth_access_token_expire_minutes
        token = create_access_token(
            {"sub": str(user.id), "email": user.email, "role": user.role},
            expires_delta=timedelta(minutes=minutes),
        )
        return token, minutes * 60

    # ==========================================================================
    # Admin Operations
    # ==========================================================================

    async def create_user(self, ctx: SessionContext, data: CreateUserRequest) -> User:
        """Create an account (admin only).

        Email uniqueness is claimed on ``users_by_email`` before the user row
        is written, so two concurrent creates cannot both succeed.

        Raises:
            EmailExistsError: Email already registered
        """
        ctx.require_admin()

        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role.value,
        )

        with storage_guard("create_user", email=user.email):
            claim = await self.session.aexecute(
                self._claim_email, [user.email, user.id]
            )
            if not claim.was_applied:
                raise EmailExistsError
            try:
                await self._insert(user)
            except Exception:
                await self.session.aexecute(self._release_email, [user.email])
                raise

        logger.info(
            "user_created",
            user_id=str(user.id),
            role=user.role,
            created_by=str(ctx.user_id),
        )
        return user

    async def ensure_admin(self, email: str, password: str) -> User | None:
        """Create the bootstrap admin if the email is not registered yet."""
        if await self.get_user_by_email(email):
            return None

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name="Admin",
            role=UserRole.ADMIN.value,
        )
        claim = await self.session.aexecute(self._claim_email, [user.email, user.id])
        if not claim.was_applied:
            return None
        await self._insert(user)
        logger.info("bootstrap_admin_created", user_id=str(user.id))
        return user

    async def update_user(
        self, ctx: SessionContext, user_id: UUID, data: UpdateUserRequest
    ) -> User:
        """Update names, role, password or active flag (admin only)."""
        ctx.require_admin()
        user = await self._require_user(user_id)

        if user_id == ctx.user_id and data.role not in (None, UserRole.ADMIN):
            raise ValidationFailedError("Admins cannot demote themselves")

        if data.first_name is not None:
            user.first_name = data.first_name.strip()
        if data.last_name is not None:
            user.last_name = data.last_name.strip()
        if data.role is not None:
            user.role = data.role.value
        if data.is_active is not None:
            user.is_active = data.is_active
        if data.password:
            user.password_hash = hash_password(data.password)

        with storage_guard("update_user", user_id=str(user_id)):
            await self._save(user)

        logger.info("user_updated", user_id=str(user_id), updated_by=str(ctx.user_id))
        return user

    async def delete_user(self, ctx: SessionContext, user_id: UUID) -> None:
        """Delete an account (admin only). Admins cannot delete themselves."""
        ctx.require_admin()
        if user_id == ctx.user_id:
            raise ValidationFailedError("Admins cannot delete their own account")

        user = await self._require_user(user_id)
        with storage_guard("delete_user", user_id=str(user_id)):
            await self.session.aexecute(self._delete_user, [user.id])
            await self.session.aexecute(self._release_email, [user.email])

        logger.info("user_deleted", user_id=str(user_id), deleted_by=str(ctx.user_id))

    # ==========================================================================
    # Self Service
    # ==========================================================================

    async def get_profile(self, ctx: SessionContext) -> User:
        return await self._require_user(ctx.user_id)

    async def update_profile(
        self, ctx: SessionContext, data: UpdateProfileRequest
    ) -> User:
        user = await self._require_user(ctx.user_id)

        if data.first_name is not None:
            user.first_name = data.first_name.strip()
        if data.last_name is not None:
            user.last_name = data.last_name.strip()
        if data.avatar_url is not None:
            user.avatar_url = data.avatar_url or None

        with storage_guard("update_profile", user_id=str(user.id)):
            await self._save(user)
        return user

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def _insert(self, user: User) -> None:
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.password_hash,
                user.first_name,
                user.last_name,
                user.avatar_url,
                user.role,
                user.is_active,
                user.created_at,
                user.updated_at,
            ],
        )

    async def _save(self, user: User) -> None:
        user.updated_at = utc_now()
        await self.session.aexecute(
            self._update_user,
            [
                user.first_name,
                user.last_name,
                user.avatar_url,
                user.role,
                user.is_active,
                user.password_hash,
                user.updated_at,
                user.id,
            ],
        )
