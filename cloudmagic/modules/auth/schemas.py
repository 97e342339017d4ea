from enum import Enum
from pydantic import BaseModel
from typing import Optional


class AuthErrorCode(str, Enum):
    MISSING_FIELDS = "MISSING_FIELDS"
    PASSWORD_MISMATCH = "PASSWORD_MISMATCH"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_EXISTS = "USER_EXISTS"
    STATUS_ERROR = "STATUS_ERROR"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    SIGNUP_ERROR = "SIGNUP_ERROR"
    USER_CREATION_ERROR = "USER_CREATION_ERROR"
    PROFILE_ERROR = "PROFILE_ERROR"
    RESET_EMAIL_ERROR = "RESET_EMAIL_ERROR"
    RESET_PASSWORD_ERROR = "RESET_PASSWORD_ERROR"
    VERIFICATION_ERROR = "VERIFICATION_ERROR"
    NO_USER = "NO_USER"
    NO_EMAIL = "NO_EMAIL"
    RESEND_ERROR = "RESEND_ERROR"
    GOOGLE_SIGNIN_ERROR = "GOOGLE_SIGNIN_ERROR"
    USER_FETCH_ERROR = "USER_FETCH_ERROR"
    OAUTH_CALLBACK_ERROR = "OAUTH_CALLBACK_ERROR"
    SIGN_OUT_ERROR = "SIGN_OUT_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class AuthErrorDetail(BaseModel):
    code: AuthErrorCode
    message: str


class AuthResult(BaseModel):
    """Uniform outcome of an auth action: either success or an error."""
    success: bool = False
    error: Optional[AuthErrorDetail] = None
    email: Optional[str] = None
    is_verified: Optional[bool] = None
    url: Optional[str] = None
    redirect_to: Optional[str] = None

    @classmethod
    def ok(cls, **fields) -> "AuthResult":
        return cls(success=True, **fields)

    @classmethod
    def fail(cls, code: AuthErrorCode, message: str) -> "AuthResult":
        return cls(success=False, error=AuthErrorDetail(code=code, message=message))

    @property
    def error_code(self) -> Optional[AuthErrorCode]:
        return self.error.code if self.error else None


class VerificationStatus(BaseModel):
    email: Optional[str] = None
    is_verified: bool = False
    error: Optional[AuthErrorDetail] = None
