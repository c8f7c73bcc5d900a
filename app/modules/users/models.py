# Supabase table: user_profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user_profiles:
- id: uuid (primary key, references auth.users.id - the identity subject id)
- first_name: text (not null)
- last_name: text (not null, default: '')
- email: text (unique, not null)
- signup_date: timestamp (default: now())
"""
