import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client
from supabase_auth.errors import AuthError

from cloudmagic.config import settings
from cloudmagic.modules.auth.schemas import AuthErrorCode, AuthResult

logger = logging.getLogger(__name__)

ACCOUNT_PATH = "/account"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuthService:
    """
    Thin wrappers around Supabase Auth and the users record store.

    Every action returns an AuthResult; nothing raises to the caller.
    Translating error codes into user-facing text is left to the UI layer.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _find_users(self, column: str, value: str) -> List[Dict[str, Any]]:
        result = self.supabase.table(settings.users_table)\
            .select("id")\
            .eq(column, value)\
            .limit(1)\
            .execute()
        return result.data or []

    def _insert_profile(self, user_id: str, email: Optional[str], full_name: Optional[str]) -> None:
        now = _now()
        self.supabase.table(settings.users_table).insert([{
            "id": user_id,
            "email": email,
            "full_name": full_name,
            "created_at": now,
            "updated_at": now,
        }]).execute()

    def login(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password; on success the caller navigates to the account page."""
        if not email or not password:
            return AuthResult.fail(AuthErrorCode.MISSING_FIELDS, "Email and password are required")

        try:
            if not self._find_users("email", email):
                return AuthResult.fail(AuthErrorCode.USER_NOT_FOUND, "Invalid credentials")

            try:
                auth_response = self.supabase.auth.sign_in_with_password({
                    "email": email,
                    "password": password,
                })
            except AuthError as e:
                logger.warning(f"Login rejected for {email}: {e}")
                return AuthResult.fail(AuthErrorCode.INVALID_CREDENTIALS, "Invalid credentials")

            if not auth_response.user or not auth_response.session:
                return AuthResult.fail(AuthErrorCode.INVALID_CREDENTIALS, "Invalid credentials")

            logger.info(f"User logged in: {auth_response.user.id}")
            return AuthResult.ok(email=email, redirect_to=ACCOUNT_PATH)
        except Exception:
            logger.exception("Unexpected error during login")
            return AuthResult.fail(AuthErrorCode.UNEXPECTED_ERROR, "An unexpected error occurred")

    def signup(self, email: str, password: str, full_name: str) -> AuthResult:
        """Create an unverified identity, send the verification email and insert the profile record."""
        if not email or not password or not full_name:
            return AuthResult.fail(AuthErrorCode.MISSING_FIELDS, "All fields are required")

        try:
            try:
                existing = self._find_users("email", email)
            except Exception as e:
                logger.error(f"Error checking existing user: {e}")
                return AuthResult.fail(AuthErrorCode.STATUS_ERROR, "Error checking user status")

            if existing:
                return AuthResult.fail(
                    AuthErrorCode.USER_EXISTS, "An account with this email already exists"
                )

            try:
                auth_response = self.supabase.auth.sign_up({
                    "email": email,
                    "password": password,
                    "options": {
                        "data": {"full_name": full_name},
                        "email_redirect_to": settings.callback_url,
                    },
                })
            except AuthError as e:
                logger.error(f"Signup error: {e}")
                return AuthResult.fail(AuthErrorCode.SIGNUP_ERROR, e.message or "Signup failed")

            if not auth_response.user:
                return AuthResult.fail(AuthErrorCode.USER_CREATION_ERROR, "Failed to create user")

            try:
                self._insert_profile(auth_response.user.id, email, full_name)
            except Exception as e:
                # Identity already exists at this point; it is left without a profile record.
                logger.error(f"Profile creation error for {auth_response.user.id}: {e}")
                return AuthResult.fail(AuthErrorCode.PROFILE_ERROR, "Failed to create user profile")

            logger.info(f"User signed up: {auth_response.user.id}")
            return AuthResult.ok(email=email, is_verified=False)
        except Exception:
            logger.exception("Unexpected error during signup")
            return AuthResult.fail(AuthErrorCode.UNEXPECTED_ERROR, "An unexpected error occurred")

    def forgot_password(self, email: str) -> AuthResult:
        if not email:
            return AuthResult.fail(AuthErrorCode.MISSING_FIELDS, "Email is required")

        try:
            if not self._find_users("email", email):
                return AuthResult.fail(AuthErrorCode.USER_NOT_FOUND, "No account found with this email")

            try:
                self.supabase.auth.reset_password_for_email(
                    email, {"redirect_to": settings.reset_password_url}
                )
            except AuthError as e:
                logger.error(f"Reset email error for {email}: {e}")
                return AuthResult.fail(
                    AuthErrorCode.RESET_EMAIL_ERROR, "Failed to send reset password email"
                )

            return AuthResult.ok(email=email)
        except Exception:
            logger.exception("Unexpected error during forgot password")
            return AuthResult.fail(AuthErrorCode.UNEXPECTED_ERROR, "An unexpected error occurred")

    def exchange_code(self, code: str) -> AuthResult:
        """Turn an emailed or OAuth PKCE code into a session stored in the request cookies."""
        try:
            response = self.supabase.auth.exchange_code_for_session({"auth_code": code})
            user = response.user if response else None
        except AuthError as e:
            logger.warning(f"Code exchange failed: {e}")
            return AuthResult.fail(AuthErrorCode.USER_FETCH_ERROR, "Failed to get user details")
        except Exception:
            logger.exception("Unexpected error during code exchange")
            return AuthResult.fail(AuthErrorCode.UNEXPECTED_ERROR, "An unexpected error occurred")
        return AuthResult.ok(email=user.email if user else None)

    def reset_password(self, password: str, confirm_password: Optional[str] = None) -> AuthResult:
        """Set a new password for the recovery session, then sign the user out."""
        if not password:
            return AuthResult.fail(AuthErrorCode.INVALID_PASSWORD, "Password is required")
        if confirm_password is not None and password != confirm_password:
            return AuthResult.fail(AuthErrorCode.PASSWORD_MISMATCH, "Passwords do not match")

        try:
            try:
                self.supabase.auth.update_user({"password": password})
            except AuthError as e:
                logger.error(f"Reset password error: {e}")
                return AuthResult.fail(AuthErrorCode.RESET_PASSWORD_ERROR, "Failed to reset password")

            self.supabase.auth.sign_out()
            return AuthResult.ok()
        except Exception:
            logger.exception("Unexpected error during password reset")
            return AuthResult.fail(AuthErrorCode.UNEXPECTED_ERROR, "An unexpected error occurred")

    def check_email_verification(self) -> AuthResult:
        try:
            response = self.supabase.auth.get_user()
        except Exception as e:
            logger.error(f"Error checking verification status: {e}")
            return AuthResult.fail(
                AuthErrorCode.VERIFICATION_ERROR, "Error checking verification status"
            )

        if not response or not response.user:
            return AuthResult.fail(AuthErrorCode.NO_USER, "No user found")

        user = response.user
        return AuthResult.ok(email=user.email, is_verified=user.email_confirmed_at is not None)

    def resend_verification_email(self) -> AuthResult:
        try:
            response = self.supabase.auth.get_user()
        except Exception as e:
            logger.warning(f"Session lookup failed before resend: {e}")
            response = None

        email = response.user.email if response and response.user else None
        if not email:
            return AuthResult.fail(AuthErrorCode.NO_EMAIL, "No email found")

        try:
            self.supabase.auth.resend({
                "type": "signup",
                "email": email,
                "options": {"email_redirect_to": settings.callback_url},
            })
        except Exception as e:
            logger.error(f"Resend verification error for {email}: {e}")
            return AuthResult.fail(AuthErrorCode.RESEND_ERROR, "Failed to resend verification email")

        return AuthResult.ok(email=email)

    def sign_in_with_google(self) -> AuthResult:
        try:
            response = self.supabase.auth.sign_in_with_oauth({
                "provider": "google",
                "options": {
                    "redirect_to": settings.callback_url,
                    "scopes": "email profile",
                    "query_params": {
                        "access_type": "offline",
                        "prompt": "consent",
                    },
                },
            })
        except Exception as e:
            logger.error(f"Google sign in error: {e}")
            return AuthResult.fail(
                AuthErrorCode.GOOGLE_SIGNIN_ERROR, "Failed to initiate Google sign in"
            )

        if not response or not response.url:
            return AuthResult.fail(
                AuthErrorCode.GOOGLE_SIGNIN_ERROR, "Authentication configuration error"
            )
        return AuthResult.ok(url=response.url)

    def handle_oauth_callback(self, code: str) -> AuthResult:
        """Finish an OAuth or email-link sign-in and make sure the profile record exists."""
        try:
            exchanged = self.exchange_code(code)
            if exchanged.error_code == AuthErrorCode.UNEXPECTED_ERROR:
                return AuthResult.fail(
                    AuthErrorCode.OAUTH_CALLBACK_ERROR, "Failed to process authentication"
                )
            if not exchanged.success:
                return exchanged

            response = self.supabase.auth.get_user()
            if not response or not response.user:
                return AuthResult.fail(AuthErrorCode.USER_FETCH_ERROR, "Failed to get user details")
            user = response.user

            if not self._find_users("id", user.id):
                metadata = user.user_metadata or {}
                try:
                    self._insert_profile(
                        user.id, user.email, metadata.get("full_name") or metadata.get("name")
                    )
                except Exception as e:
                    logger.error(f"Profile creation error for {user.id}: {e}")
                    return AuthResult.fail(AuthErrorCode.PROFILE_ERROR, "Failed to create user profile")
                logger.info(f"Created profile record for {user.id}")

            return AuthResult.ok(email=user.email, is_verified=user.email_confirmed_at is not None)
        except Exception:
            logger.exception("OAuth callback error")
            return AuthResult.fail(
                AuthErrorCode.OAUTH_CALLBACK_ERROR, "Failed to process authentication"
            )

    def sign_out(self) -> AuthResult:
        try:
            self.supabase.auth.sign_out()
            return AuthResult.ok()
        except Exception as e:
            logger.error(f"Sign out error: {e}")
            return AuthResult.fail(AuthErrorCode.SIGN_OUT_ERROR, "Failed to sign out")
