import logging
from typing import Optional

import httpx
from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.core.context import RequestContext
from app.modules.calendar_accounts.service import CalendarAccountService
from app.modules.oauth.schemas import OAuthCallbackRequest, OAuthCallbackResponse, OAuthUrlResponse
from app.modules.oauth.state import (
    OAuthStateError, OAuthStateSecretMissingError, issue_state, verify_state,
)
from app.modules.providers import SYNCABLE_PROVIDERS, get_provider
from app.modules.providers.base import (
    ProviderAuthError, ProviderNotConfiguredError, ProviderRequestError,
)
from app.modules.sync.service import SyncService

logger = logging.getLogger(__name__)


class OAuthService:
    def __init__(self, supabase: Client, http_client: Optional[httpx.Client] = None):
        self.supabase = supabase
        self.http_client = http_client
        self.accounts = CalendarAccountService(supabase)

    def authorization_url(self, ctx: RequestContext, provider_name: str) -> OAuthUrlResponse:
        """Provider consent URL whose state is bound to the caller"""
        if provider_name not in SYNCABLE_PROVIDERS:
            raise HTTPException(status_code=400, detail=f"Provider '{provider_name}' cannot be connected")
        provider = get_provider(provider_name, http_client=self.http_client)
        try:
            state = issue_state(ctx.user_id, provider_name, settings.oauth_state_secret)
            return OAuthUrlResponse(
                provider=provider_name,
                authorization_url=provider.authorization_url(state),
            )
        except (ProviderNotConfiguredError, OAuthStateSecretMissingError) as e:
            logger.error(f"Cannot build {provider_name} OAuth URL: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        finally:
            provider.close()

    def complete(self, callback: OAuthCallbackRequest) -> OAuthCallbackResponse:
        """Finish the authorization-code flow and run the first sync"""
        try:
            state = verify_state(
                callback.state,
                settings.oauth_state_secret,
                settings.oauth_state_ttl_seconds,
            )
        except OAuthStateSecretMissingError as e:
            logger.error(f"Cannot verify OAuth callback state: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        except OAuthStateError as e:
            logger.warning(f"Rejected OAuth callback state: {e}")
            raise HTTPException(status_code=400, detail="Invalid state parameter")

        provider = get_provider(state.provider, http_client=self.http_client)
        try:
            tokens = provider.exchange_code(callback.code)
            info = provider.get_account_info(tokens.access_token)
        except ProviderNotConfiguredError as e:
            logger.error(f"Cannot complete {state.provider} OAuth: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        except ProviderAuthError as e:
            logger.warning(f"{state.provider} OAuth code exchange rejected: {e}")
            raise HTTPException(status_code=400, detail="Failed to exchange code for tokens")
        except ProviderRequestError as e:
            logger.error(f"{state.provider} OAuth exchange failed: {e}")
            raise HTTPException(status_code=502, detail="Failed to get account info from provider")
        finally:
            provider.close()

        account = self.accounts.upsert_connected_account(state.user_id, state.provider, info, tokens)

        response = OAuthCallbackResponse(
            provider=state.provider,
            email=info.email,
            account_id=account["id"],
        )
        try:
            result = SyncService(self.supabase, http_client=self.http_client).sync_record(account)
            response.event_count = result.event_count
        except HTTPException as e:
            # The account is connected; the client can retry the sync on its own.
            logger.warning(f"Initial sync of account {account['id']} failed: {e.detail}")
            response.sync_error = str(e.detail)
        return response
