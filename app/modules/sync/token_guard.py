import logging
from fastapi import HTTPException
from app.modules.calendar_accounts.models import (
    ACCOUNT_STATUS_DISCONNECTED, ACCOUNT_STATUS_STALE,
)
from app.modules.calendar_accounts.service import CalendarAccountService
from app.modules.providers.base import (
    CalendarProvider, ProviderAuthError, ProviderRequestError,
)

logger = logging.getLogger(__name__)

RECONNECT_REQUIRED = "Calendar authorization expired; reconnect the account"


def ensure_access_token(
    account: dict,
    provider: CalendarProvider,
    accounts: CalendarAccountService,
) -> str:
    """Return a usable access token, refreshing it once if the provider rejects the stored one"""
    access_token = account["access_token"]
    try:
        if provider.check_access_token(access_token):
            return access_token
    except ProviderRequestError as e:
        # The events fetch that follows reports the real failure.
        logger.warning(f"Token probe for account {account['id']} failed: {e}")
        return access_token

    logger.info(f"Access token for account {account['id']} rejected, refreshing")
    accounts.set_status(account["id"], ACCOUNT_STATUS_STALE)
    try:
        tokens = provider.refresh_access_token(account.get("refresh_token") or "")
    except ProviderAuthError as e:
        logger.warning(f"Token refresh for account {account['id']} rejected: {e}")
        accounts.set_status(account["id"], ACCOUNT_STATUS_DISCONNECTED)
        raise HTTPException(status_code=401, detail=RECONNECT_REQUIRED)
    except ProviderRequestError as e:
        logger.error(f"Token refresh for account {account['id']} failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to refresh calendar access token")

    accounts.update_access_token(account["id"], tokens)
    return tokens.access_token
