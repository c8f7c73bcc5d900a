# Supabase table: events
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

events:
- id: uuid (primary key)
- user_id: uuid (owner, not null)
- calendar_account_id: uuid (foreign key to calendar_accounts.id, nullable) - null for manual events
- provider_event_id: text (not null) - provider id, or manual_<uuid> for manual events
- title: text (not null)
- description: text (nullable)
- start_time: text (ISO-8601, not null)
- end_time: text (ISO-8601, not null)
- location: text (nullable)
- is_all_day: boolean (default: false)
- last_modified: timestamp (not null)
- is_deleted: boolean (default: false) - soft delete, hidden from every user-facing query
- deleted_at: timestamp (nullable) - set with is_deleted, drives retention purging
"""
