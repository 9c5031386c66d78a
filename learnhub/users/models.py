"""Database models for users.

Cassandra tables:
- users: profile, role and password hash keyed by id
- users_by_email: lookup table that also enforces email uniqueness
  through ``INSERT ... IF NOT EXISTS``
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from learnhub.auth.permissions import UserRole
from learnhub.core.dates import ensure_utc_aware, utc_now


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    password_hash TEXT,
    first_name TEXT,
    last_name TEXT,
    avatar_url TEXT,
    role TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USERS_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id UUID
)
"""

USERS_TABLES_CQL = [
    USER_TABLE_CQL,
    USERS_BY_EMAIL_TABLE_CQL,
]


class User:
    """User entity.

    Attributes:
        id: Unique identifier
        email: Login email, stored lower-cased
        password_hash: Argon2id hash
        first_name, last_name: Profile names
        avatar_url: Profile picture URL
        role: admin or student
        is_active: Inactive users cannot log in or receive broadcasts
    """

    def __init__(
        self,
        email: str,
        password_hash: str,
        id: UUID | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        avatar_url: str | None = None,
        role: str = UserRole.STUDENT.value,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email.lower().strip()
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.avatar_url = avatar_url
        self.role = role
        self.is_active = is_active if is_active is not None else True
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            password_hash=row.password_hash,
            first_name=row.first_name,
            last_name=row.last_name,
            avatar_url=row.avatar_url,
            role=row.role or UserRole.STUDENT.value,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
