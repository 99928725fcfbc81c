"""
User management endpoints.
Profile, password, plan usage and logo upload.
"""

from fastapi import APIRouter, File, UploadFile

from app.api.deps import DbSession, CurrentUser
from app.schemas.user import (
    LogoUploadResponse,
    PasswordChange,
    UsageResponse,
    UserUpdate,
    UserResponse,
)
from app.schemas.base import MessageResponse
from app.services.user import UserService


router = APIRouter()


@router.get(
    "/me",
    response_model=UserResponse,
    summary="My profile",
    description="Get my user profile",
)
async def get_my_profile(
    current_user: CurrentUser,
) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update my profile",
    description="Update my profile and company details",
)
async def update_my_profile(
    data: UserUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> UserResponse:
    """Update current user's profile."""
    service = UserService(db)
    user = await service.update(current_user, data)
    return UserResponse.model_validate(user)


@router.post(
    "/me/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Change my password",
)
async def change_password(
    data: PasswordChange,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Change current user's password."""
    service = UserService(db)
    await service.change_password(
        current_user,
        data.current_password,
        data.new_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.get(
    "/me/usage",
    response_model=UsageResponse,
    summary="Plan usage",
    description="Invoices created this month against the plan limit",
)
async def get_usage(
    current_user: CurrentUser,
    db: DbSession,
) -> UsageResponse:
    service = UserService(db)
    return await service.get_usage(current_user)


@router.post(
    "/me/logo",
    response_model=LogoUploadResponse,
    summary="Upload logo",
    description="Upload a company logo (PNG, JPEG, WebP or SVG, max 5MB)",
)
async def upload_logo(
    current_user: CurrentUser,
    db: DbSession,
    file: UploadFile = File(...),
) -> LogoUploadResponse:
    """
    Upload the company logo shown on PDFs.

    Raster images are downscaled to 2000x2000 at most and re-encoded.
    """
    service = UserService(db)
    data = await file.read()
    return await service.upload_logo(current_user, data, file.filename or "logo")
