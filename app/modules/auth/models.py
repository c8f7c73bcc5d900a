# Supabase Auth
# Identity is owned by Supabase Auth; the JWT subject (auth.users.id) is the
# user id used across every table in this service.

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Resolve the current user from a JWT

First and last name are stored in user_metadata at sign-up and mirrored into
the user_profiles table (see app/modules/users/models.py).
"""
