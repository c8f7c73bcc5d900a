# OAuth connection flow
# No tables of its own: a completed flow upserts a row in calendar_accounts
# (see app/modules/calendar_accounts/models.py).

"""
Flow:
1. GET  /oauth/{provider}/authorize -> provider authorization URL carrying a
   signed state (app/modules/oauth/state.py) bound to the caller.
2. The provider redirects the browser to the frontend callback page with
   ?code=...&state=...
3. POST /oauth/callback {code, state} -> state verified, code exchanged,
   account identity fetched, calendar account upserted, initial sync run.
"""
