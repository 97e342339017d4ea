"""Tests for AuthService actions."""

from unittest.mock import Mock

import pytest
from supabase_auth.errors import AuthError

from cloudmagic.conftest import make_user
from cloudmagic.config import settings
from cloudmagic.modules.auth.schemas import AuthErrorCode
from cloudmagic.modules.auth.service import AuthService


@pytest.fixture
def service(mock_supabase: Mock) -> AuthService:
    return AuthService(mock_supabase)


@pytest.fixture
def existing_profile(users_table):
    users_table.rows.append({"id": "user-1", "email": "a@b.com", "full_name": "Jane Doe"})
    return users_table.rows[0]


class TestLogin:
    def test_missing_password_makes_no_backend_call(self, service, mock_supabase):
        # Act
        result = service.login("a@b.com", "")

        # Assert
        assert result.error_code == AuthErrorCode.MISSING_FIELDS
        mock_supabase.table.assert_not_called()
        mock_supabase.auth.sign_in_with_password.assert_not_called()

    def test_unknown_email_is_user_not_found(self, service, mock_supabase):
        result = service.login("a@b.com", "Abcdef1!")

        assert result.error_code == AuthErrorCode.USER_NOT_FOUND
        mock_supabase.auth.sign_in_with_password.assert_not_called()

    def test_rejected_password(self, service, mock_supabase, existing_profile):
        # Arrange
        mock_supabase.auth.sign_in_with_password.side_effect = AuthError("Invalid login credentials", None)

        # Act
        result = service.login("a@b.com", "Abcdef1!")

        # Assert
        assert result.error_code == AuthErrorCode.INVALID_CREDENTIALS
        assert result.error.message == "Invalid credentials"

    def test_success_points_at_account_page(self, service, mock_supabase, existing_profile):
        mock_supabase.auth.sign_in_with_password.return_value = Mock(user=make_user(), session=Mock())

        result = service.login("a@b.com", "Abcdef1!")

        assert result.success
        assert result.redirect_to == "/account"
        mock_supabase.auth.sign_in_with_password.assert_called_once_with(
            {"email": "a@b.com", "password": "Abcdef1!"}
        )

    def test_unexpected_exception_becomes_result(self, service, mock_supabase, existing_profile):
        mock_supabase.auth.sign_in_with_password.side_effect = RuntimeError("boom")

        result = service.login("a@b.com", "Abcdef1!")

        assert result.error_code == AuthErrorCode.UNEXPECTED_ERROR


class TestSignup:
    def test_creates_identity_and_profile_record(self, service, mock_supabase, users_table):
        # Arrange
        mock_supabase.auth.sign_up.return_value = Mock(user=make_user("new-user", "a@b.com", verified=False))

        # Act
        result = service.signup("a@b.com", "Abcdef1!", "Jane Doe")

        # Assert
        assert result.success
        assert result.error is None
        assert result.is_verified is False
        assert len(users_table.rows) == 1
        record = users_table.rows[0]
        assert record["id"] == "new-user"
        assert record["email"] == "a@b.com"
        assert record["full_name"] == "Jane Doe"
        assert record["created_at"] == record["updated_at"]
        sign_up_args = mock_supabase.auth.sign_up.call_args[0][0]
        assert sign_up_args["options"]["data"] == {"full_name": "Jane Doe"}
        assert sign_up_args["options"]["email_redirect_to"] == settings.callback_url

    def test_second_signup_is_rejected_without_duplicate_record(self, service, mock_supabase, users_table):
        mock_supabase.auth.sign_up.return_value = Mock(user=make_user("new-user", "a@b.com", verified=False))

        first = service.signup("a@b.com", "Abcdef1!", "Jane Doe")
        second = service.signup("a@b.com", "Abcdef1!", "Jane Doe")

        assert first.success
        assert second.error_code == AuthErrorCode.USER_EXISTS
        assert len(users_table.inserts) == 1
        mock_supabase.auth.sign_up.assert_called_once()

    def test_missing_field(self, service, mock_supabase):
        result = service.signup("a@b.com", "Abcdef1!", "")

        assert result.error_code == AuthErrorCode.MISSING_FIELDS
        mock_supabase.auth.sign_up.assert_not_called()

    def test_backend_rejection_inserts_nothing(self, service, mock_supabase, users_table):
        mock_supabase.auth.sign_up.side_effect = AuthError("Password should be stronger", None)

        result = service.signup("a@b.com", "Abcdef1!", "Jane Doe")

        assert result.error_code == AuthErrorCode.SIGNUP_ERROR
        assert result.error.message == "Password should be stronger"
        assert users_table.rows == []

    def test_profile_insert_failure(self, service, mock_supabase, users_table):
        mock_supabase.auth.sign_up.return_value = Mock(user=make_user("new-user", "a@b.com", verified=False))
        users_table.fail_writes = True

        result = service.signup("a@b.com", "Abcdef1!", "Jane Doe")

        assert result.error_code == AuthErrorCode.PROFILE_ERROR

    def test_no_user_returned(self, service, mock_supabase):
        mock_supabase.auth.sign_up.return_value = Mock(user=None)

        result = service.signup("a@b.com", "Abcdef1!", "Jane Doe")

        assert result.error_code == AuthErrorCode.USER_CREATION_ERROR

    def test_status_lookup_failure(self, service, mock_supabase):
        mock_supabase.table.side_effect = RuntimeError("connection refused")

        result = service.signup("a@b.com", "Abcdef1!", "Jane Doe")

        assert result.error_code == AuthErrorCode.STATUS_ERROR
        mock_supabase.auth.sign_up.assert_not_called()


class TestForgotPassword:
    def test_unknown_email_sends_nothing(self, service, mock_supabase):
        result = service.forgot_password("nobody@b.com")

        assert result.error_code == AuthErrorCode.USER_NOT_FOUND
        mock_supabase.auth.reset_password_for_email.assert_not_called()

    def test_sends_reset_link(self, service, mock_supabase, existing_profile):
        result = service.forgot_password("a@b.com")

        assert result.success
        mock_supabase.auth.reset_password_for_email.assert_called_once_with(
            "a@b.com", {"redirect_to": settings.reset_password_url}
        )

    def test_send_failure(self, service, mock_supabase, existing_profile):
        mock_supabase.auth.reset_password_for_email.side_effect = AuthError("rate limited", None)

        result = service.forgot_password("a@b.com")

        assert result.error_code == AuthErrorCode.RESET_EMAIL_ERROR


class TestExchangeCode:
    def test_unexpected_failure_becomes_result(self, service, mock_supabase):
        # Arrange
        mock_supabase.auth.exchange_code_for_session.side_effect = RuntimeError("connection reset")

        # Act
        result = service.exchange_code("abc")

        # Assert
        assert result.error_code == AuthErrorCode.UNEXPECTED_ERROR

    def test_success(self, service, mock_supabase):
        mock_supabase.auth.exchange_code_for_session.return_value = Mock(user=make_user())

        result = service.exchange_code("abc")

        assert result.success
        assert result.email == "jane@example.com"


class TestResetPassword:
    def test_mismatch_makes_no_backend_call(self, service, mock_supabase):
        result = service.reset_password("Abcdef1!", "Abcdef1?")

        assert result.error_code == AuthErrorCode.PASSWORD_MISMATCH
        mock_supabase.auth.update_user.assert_not_called()

    def test_empty_password(self, service):
        assert service.reset_password("").error_code == AuthErrorCode.INVALID_PASSWORD

    def test_success_signs_out(self, service, mock_supabase):
        result = service.reset_password("Abcdef1!", "Abcdef1!")

        assert result.success
        mock_supabase.auth.update_user.assert_called_once_with({"password": "Abcdef1!"})
        mock_supabase.auth.sign_out.assert_called_once()

    def test_backend_rejection(self, service, mock_supabase):
        mock_supabase.auth.update_user.side_effect = AuthError("Auth session missing!", None)

        result = service.reset_password("Abcdef1!")

        assert result.error_code == AuthErrorCode.RESET_PASSWORD_ERROR
        mock_supabase.auth.sign_out.assert_not_called()


class TestEmailVerification:
    def test_no_session(self, service):
        assert service.check_email_verification().error_code == AuthErrorCode.NO_USER

    def test_lookup_failure(self, service, mock_supabase):
        mock_supabase.auth.get_user.side_effect = AuthError("network", None)

        assert service.check_email_verification().error_code == AuthErrorCode.VERIFICATION_ERROR

    @pytest.mark.parametrize("verified", [True, False])
    def test_reports_confirmation_timestamp(self, service, mock_supabase, verified):
        mock_supabase.auth.get_user.return_value = Mock(user=make_user(verified=verified))

        result = service.check_email_verification()

        assert result.success
        assert result.email == "jane@example.com"
        assert result.is_verified is verified

    def test_resend_without_session_email(self, service, mock_supabase):
        result = service.resend_verification_email()

        assert result.error_code == AuthErrorCode.NO_EMAIL
        mock_supabase.auth.resend.assert_not_called()

    def test_resend(self, service, mock_supabase):
        mock_supabase.auth.get_user.return_value = Mock(user=make_user(verified=False))

        result = service.resend_verification_email()

        assert result.success
        args = mock_supabase.auth.resend.call_args[0][0]
        assert args["type"] == "signup"
        assert args["email"] == "jane@example.com"

    def test_resend_failure(self, service, mock_supabase):
        mock_supabase.auth.get_user.return_value = Mock(user=make_user(verified=False))
        mock_supabase.auth.resend.side_effect = AuthError("rate limited", None)

        assert service.resend_verification_email().error_code == AuthErrorCode.RESEND_ERROR


class TestGoogleSignIn:
    def test_returns_provider_url(self, service, mock_supabase):
        mock_supabase.auth.sign_in_with_oauth.return_value = Mock(url="https://accounts.google.com/o/oauth2")

        result = service.sign_in_with_google()

        assert result.success
        assert result.url == "https://accounts.google.com/o/oauth2"
        options = mock_supabase.auth.sign_in_with_oauth.call_args[0][0]["options"]
        assert options["redirect_to"] == settings.callback_url

    def test_missing_url(self, service, mock_supabase):
        mock_supabase.auth.sign_in_with_oauth.return_value = Mock(url=None)

        result = service.sign_in_with_google()

        assert result.error_code == AuthErrorCode.GOOGLE_SIGNIN_ERROR
        assert result.error.message == "Authentication configuration error"

    def test_backend_failure(self, service, mock_supabase):
        mock_supabase.auth.sign_in_with_oauth.side_effect = AuthError("provider disabled", None)

        assert service.sign_in_with_google().error_code == AuthErrorCode.GOOGLE_SIGNIN_ERROR


class TestOAuthCallback:
    def test_creates_profile_from_provider_metadata(self, service, mock_supabase, users_table):
        # Arrange
        user = make_user("google-user", "g@b.com", metadata={"name": "Grace Hopper"})
        mock_supabase.auth.exchange_code_for_session.return_value = Mock(user=user)
        mock_supabase.auth.get_user.return_value = Mock(user=user)

        # Act
        result = service.handle_oauth_callback("code-123")

        # Assert
        assert result.success
        mock_supabase.auth.exchange_code_for_session.assert_called_once_with({"auth_code": "code-123"})
        assert users_table.rows[0]["id"] == "google-user"
        assert users_table.rows[0]["full_name"] == "Grace Hopper"

    def test_existing_profile_is_not_duplicated(self, service, mock_supabase, users_table, existing_profile):
        user = make_user("user-1", "a@b.com")
        mock_supabase.auth.exchange_code_for_session.return_value = Mock(user=user)
        mock_supabase.auth.get_user.return_value = Mock(user=user)

        result = service.handle_oauth_callback("code-123")

        assert result.success
        assert users_table.inserts == []

    def test_bad_code(self, service, mock_supabase):
        mock_supabase.auth.exchange_code_for_session.side_effect = AuthError("invalid flow state", None)

        result = service.handle_oauth_callback("bad")

        assert result.error_code == AuthErrorCode.USER_FETCH_ERROR

    def test_profile_insert_failure(self, service, mock_supabase, users_table):
        user = make_user("google-user", "g@b.com")
        mock_supabase.auth.exchange_code_for_session.return_value = Mock(user=user)
        mock_supabase.auth.get_user.return_value = Mock(user=user)
        users_table.fail_writes = True

        assert service.handle_oauth_callback("code-123").error_code == AuthErrorCode.PROFILE_ERROR

    def test_unexpected_exchange_failure(self, service, mock_supabase):
        mock_supabase.auth.exchange_code_for_session.side_effect = RuntimeError("connection reset")

        result = service.handle_oauth_callback("code-123")

        assert result.error_code == AuthErrorCode.OAUTH_CALLBACK_ERROR
        mock_supabase.auth.get_user.assert_not_called()

    def test_unexpected_exception(self, service, mock_supabase):
        mock_supabase.auth.exchange_code_for_session.return_value = Mock(user=make_user())
        mock_supabase.auth.get_user.side_effect = RuntimeError("boom")

        assert service.handle_oauth_callback("code-123").error_code == AuthErrorCode.OAUTH_CALLBACK_ERROR


class TestSignOut:
    def test_sign_out(self, service, mock_supabase):
        assert service.sign_out().success
        mock_supabase.auth.sign_out.assert_called_once()

    def test_failure(self, service, mock_supabase):
        mock_supabase.auth.sign_out.side_effect = AuthError("network", None)

        assert service.sign_out().error_code == AuthErrorCode.SIGN_OUT_ERROR
