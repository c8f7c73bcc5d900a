# Supabase table: calendar_accounts
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

calendar_accounts:
- id: uuid (primary key)
- user_id: uuid (owner, references user_profiles.id, not null)
- provider: text (not null) - values: google, outlook, apple
- provider_account_id: text (not null) - account id assigned by the provider
- email: text (not null)
- access_token: text (not null)
- refresh_token: text (not null, may be empty)
- is_active: boolean (default: true)
- status: text (default: 'active') - values: active, stale, disconnected
- last_sync: timestamp (nullable)
- created_at: timestamp (default: now())
- unique constraint on (user_id, provider, provider_account_id)

Account lifecycle:
    disconnected -> connecting (OAuth in flight, tracked by the signed state)
    -> active <-> stale (access token rejected, refresh pending) -> active
    active/stale -> disconnected on deletion or when the refresh fails.
"""

ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_STALE = "stale"
ACCOUNT_STATUS_DISCONNECTED = "disconnected"
