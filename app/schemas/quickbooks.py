"""
QuickBooks connection schemas.
"""

from datetime import datetime

from app.schemas.base import BaseSchema


class QuickBooksStatus(BaseSchema):
    configured: bool
    connected: bool
    company_name: str | None = None
    realm_id: str | None = None
    environment: str | None = None
    last_sync_at: datetime | None = None


class AuthUrlResponse(BaseSchema):
    url: str
    state: str


class OAuthCallbackRequest(BaseSchema):
    code: str
    realm_id: str
    state: str
