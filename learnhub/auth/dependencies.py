"""FastAPI dependencies resolving the caller's SessionContext."""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError

from learnhub.auth.security import decode_access_token
from learnhub.auth.session import SessionContext
from learnhub.core.context import set_user_id
from learnhub.core.exceptions import (
    LearnHubError,
    NotAuthenticatedError,
    handle_domain_error,
)


def get_token_from_header(request: Request) -> str | None:
    """Extract the Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":  # noqa: PLR2004
        return None

    return parts[1]


async def get_session_context(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> SessionContext:
    """Resolve the authenticated caller.

    Raises:
        HTTPException(401): If the token is missing, invalid or expired
    """
    try:
        if not token:
            raise NotAuthenticatedError("Access token not provided")
        try:
            payload = decode_access_token(token)
        except JWTError as e:
            raise NotAuthenticatedError("Invalid or expired token") from e
        ctx = SessionContext.from_claims(payload)
    except LearnHubError as e:
        raise handle_domain_error(e) from e

    set_user_id(ctx.user_id)
    return ctx


async def get_admin_session(
    ctx: Annotated[SessionContext, Depends(get_session_context)],
) -> SessionContext:
    """Resolve the caller and require the admin role (403 otherwise)."""
    try:
        ctx.require_admin()
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return ctx


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]
AdminSession = Annotated[SessionContext, Depends(get_admin_session)]
