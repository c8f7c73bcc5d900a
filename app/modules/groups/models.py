# Supabase tables: groups, group_memberships, group_invites
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- created_by: uuid (user id of the creator, not null)
- created_at: timestamp (default: now())

group_memberships:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (not null)
- role: text (not null, default: 'member') - values: admin, member
- joined_at: timestamp (default: now())
- unique constraint on (group_id, user_id)

group_invites:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- email: text (not null, stored lower-case)
- invited_by: uuid (not null)
- status: text (not null, default: 'pending') - values: pending, accepted, declined
- created_at: timestamp (default: now())
"""

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"

INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"
INVITE_DECLINED = "declined"
