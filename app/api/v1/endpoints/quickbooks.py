"""
QuickBooks Online connection endpoints.
"""

from fastapi import APIRouter

from app.api.deps import DbSession, CurrentUser
from app.schemas.base import MessageResponse
from app.schemas.quickbooks import AuthUrlResponse, OAuthCallbackRequest, QuickBooksStatus
from app.services.quickbooks import QuickBooksService


router = APIRouter()


@router.get(
    "/status",
    response_model=QuickBooksStatus,
    summary="Connection status",
)
async def get_status(
    current_user: CurrentUser,
    db: DbSession,
) -> QuickBooksStatus:
    service = QuickBooksService(db)
    return await service.get_status(current_user.id)


@router.get(
    "/auth-url",
    response_model=AuthUrlResponse,
    summary="Authorization URL",
    description="URL of the Intuit consent screen; the state expires after 10 minutes",
)
async def get_auth_url(
    current_user: CurrentUser,
    db: DbSession,
) -> AuthUrlResponse:
    service = QuickBooksService(db)
    return service.get_auth_url(current_user)


@router.post(
    "/callback",
    response_model=QuickBooksStatus,
    summary="OAuth callback",
    description="Exchange the authorization code and store the connection",
)
async def oauth_callback(
    data: OAuthCallbackRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> QuickBooksStatus:
    service = QuickBooksService(db)
    return await service.handle_callback(current_user, data.code, data.realm_id, data.state)


@router.post(
    "/disconnect",
    response_model=MessageResponse,
    summary="Disconnect",
)
async def disconnect(
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = QuickBooksService(db)
    await service.disconnect(current_user.id)
    return MessageResponse(message="QuickBooks disconnected")
