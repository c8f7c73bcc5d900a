from pydantic import BaseModel
from typing import Optional


class OAuthUrlResponse(BaseModel):
    provider: str
    authorization_url: str


class OAuthCallbackRequest(BaseModel):
    code: str
    state: str


class OAuthCallbackResponse(BaseModel):
    success: bool = True
    provider: str
    email: str
    account_id: str
    event_count: Optional[int] = None
    sync_error: Optional[str] = None
