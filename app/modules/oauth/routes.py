from fastapi import APIRouter, Depends
from app.core.context import RequestContext
from app.core.dependencies import get_request_context
from app.database.supabase_client import get_supabase
from app.modules.oauth.schemas import OAuthCallbackRequest, OAuthCallbackResponse, OAuthUrlResponse
from app.modules.oauth.service import OAuthService
from supabase import Client

router = APIRouter(prefix="/oauth", tags=["oauth"])


def get_oauth_service(supabase: Client = Depends(get_supabase)) -> OAuthService:
    return OAuthService(supabase)


@router.get("/{provider}/authorize", response_model=OAuthUrlResponse)
async def get_authorization_url(
    provider: str,
    ctx: RequestContext = Depends(get_request_context),
    service: OAuthService = Depends(get_oauth_service)
):
    """Authorization URL for connecting a Google or Outlook calendar"""
    return service.authorization_url(ctx, provider)


@router.post("/callback", response_model=OAuthCallbackResponse)
def oauth_callback(
    callback: OAuthCallbackRequest,
    service: OAuthService = Depends(get_oauth_service)
):
    """Complete the OAuth flow; the user is taken from the signed state"""
    return service.complete(callback)
