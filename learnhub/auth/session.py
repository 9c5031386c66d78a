"""Explicit session context handed to every service call."""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from learnhub.auth.permissions import UserRole, is_admin
from learnhub.core.exceptions import NotAuthenticatedError, PermissionDeniedError


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller.

    Services receive this as their first argument instead of reading any
    ambient auth state.
    """

    user_id: UUID
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    def require_admin(self) -> None:
        """Raise PermissionDeniedError unless the caller is an admin."""
        if not self.is_admin:
            raise PermissionDeniedError("Admin role required")

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "SessionContext":
        """Build a session from decoded token claims.

        Raises:
            NotAuthenticatedError: If required claims are missing or malformed
        """
        try:
            return cls(
                user_id=UUID(str(claims["sub"])),
                email=str(claims["email"]),
                role=UserRole(claims["role"]),
            )
        except (KeyError, ValueError) as e:
            raise NotAuthenticatedError("Invalid token claims") from e
