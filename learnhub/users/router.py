"""User API endpoints.

Provides routes for:
- Login (bearer access token)
- Own profile
- Admin user management
"""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import AdminSession, CurrentSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.users.dependencies import UserServiceDep
from learnhub.users.schemas import (
    CreateUserRequest,
    LoginRequest,
    TokenResponse,
    UpdateProfileRequest,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
)


auth_router = APIRouter(prefix="/v1/auth", tags=["auth"])
profile_router = APIRouter(prefix="/v1/profile", tags=["profile"])
admin_router = APIRouter(prefix="/v1/admin/users", tags=["admin-users"])


# ==============================================================================
# Login
# ==============================================================================


@auth_router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Account inactive"},
    },
)
async def login(data: LoginRequest, service: UserServiceDep) -> TokenResponse:
    """Exchange email and password for a bearer access token."""
    try:
        user = await service.authenticate(data.email, data.password)
    except LearnHubError as e:
        raise handle_domain_error(e) from e

    token, expires_in = service.issue_token(user)
    return TokenResponse(access_token=token, expires_in=expires_in)


# ==============================================================================
# Profile
# ==============================================================================


@profile_router.get("", response_model=UserResponse)
async def get_profile(ctx: CurrentSession, service: UserServiceDep) -> UserResponse:
    try:
        user = await service.get_profile(ctx)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return UserResponse.from_entity(user)


@profile_router.patch("", response_model=UserResponse)
async def update_profile(
    data: UpdateProfileRequest,
    ctx: CurrentSession,
    service: UserServiceDep,
) -> UserResponse:
    try:
        user = await service.update_profile(ctx, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return UserResponse.from_entity(user)


# ==============================================================================
# Admin
# ==============================================================================


@admin_router.get("", response_model=UserListResponse)
async def list_users(ctx: AdminSession, service: UserServiceDep) -> UserListResponse:
    users = await service.list_users()
    return UserListResponse(
        items=[UserResponse.from_entity(u) for u in users],
        total=len(users),
    )


@admin_router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email already registered"}},
)
async def create_user(
    data: CreateUserRequest,
    ctx: AdminSession,
    service: UserServiceDep,
) -> UserResponse:
    try:
        user = await service.create_user(ctx, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return UserResponse.from_entity(user)


@admin_router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UpdateUserRequest,
    ctx: AdminSession,
    service: UserServiceDep,
) -> UserResponse:
    try:
        user = await service.update_user(ctx, user_id, data)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return UserResponse.from_entity(user)


@admin_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    ctx: AdminSession,
    service: UserServiceDep,
) -> None:
    try:
        await service.delete_user(ctx, user_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
