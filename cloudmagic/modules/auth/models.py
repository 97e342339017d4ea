# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration and email verification (auth.users table)
# - Password login, Google OAuth and PKCE code exchange
# - Session issuance, refresh and revocation
# - Password hashing and reset emails

"""
Supabase Auth calls used by AuthService:
- auth.sign_up() - Register a new, unverified identity and send the verification email
- auth.sign_in_with_password() - Authenticate with email and password
- auth.sign_in_with_oauth() - Get the Google authorization URL
- auth.exchange_code_for_session() - Finish OAuth, email verification and recovery links
- auth.reset_password_for_email() - Send the password reset email
- auth.update_user() - Set the new password
- auth.resend() - Resend the signup verification email
- auth.get_user() - Current identity (id, email, email_confirmed_at, user_metadata)
- auth.sign_out() - End the session

The session itself lives in cookies written through CookieStorage
(cloudmagic.core.cookies); this app never reads or signs tokens.
"""
