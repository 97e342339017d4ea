# Supabase tables: users, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, references auth.users.id)
- email: text (not null) - copied from auth.users at signup / OAuth callback
- full_name: text (nullable)
- created_at: timestamp
- updated_at: timestamp (nullable)

A row is created once per identity, at signup or on the first OAuth/email-link
callback, after checking that none exists. It is updated from the account page
and never deleted by this app.

Note: Authentication data (password, tokens, email_confirmed_at) is stored in
auth.users, managed by Supabase Auth. This table only stores profile data.
"""
