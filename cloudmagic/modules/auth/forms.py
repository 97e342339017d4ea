"""
View-state for the server-rendered forms.

A FormState lives for one render: the submitted values, which fields show
validation feedback, the rules each field still fails, and the error or
success message. Forms whose rules do not all pass are re-rendered without
calling the backend.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cloudmagic.modules.auth.schemas import AuthErrorCode, AuthErrorDetail
from cloudmagic.modules.auth.validators import (
    EMAIL_RULES,
    FULL_NAME_RULES,
    PASSWORD_RULES,
    PROFILE_NAME_RULES,
    ValidationRule,
    failed_rules,
)

# Overrides for backend messages that are not meant for the page as-is
ERROR_MESSAGES: Dict[AuthErrorCode, str] = {
    AuthErrorCode.MISSING_FIELDS: "Please fill in all required fields.",
    AuthErrorCode.USER_EXISTS: "An account with this email already exists.",
    AuthErrorCode.STATUS_ERROR: "We could not check your account status. Please try again.",
    AuthErrorCode.PASSWORD_MISMATCH: "Passwords do not match",
    AuthErrorCode.USER_FETCH_ERROR: "This link is invalid or has expired.",
    AuthErrorCode.UNEXPECTED_ERROR: "An unexpected error occurred. Please try again.",
}

# ?error= values set by redirects to the login page
LOGIN_ERRORS = {
    "auth_failed": "We could not complete your sign in. Please try again.",
    "no_code": "The sign in link is missing its authorization code.",
}

RULE_HEADINGS = {
    "email": "Email Requirements",
    "password": "Password Requirements",
    "fullname": "Name Requirements",
    "full_name": "Name Requirements",
}


def describe_error(error: Optional[AuthErrorDetail]) -> Optional[str]:
    if error is None:
        return None
    return ERROR_MESSAGES.get(error.code, error.message)


@dataclass
class FieldState:
    name: str
    label: str
    value: str = ""
    rules: List[ValidationRule] = field(default_factory=list)
    kind: str = "text"
    show_validation: bool = False

    @property
    def failed(self) -> List[ValidationRule]:
        return failed_rules(self.value, self.rules)

    @property
    def is_valid(self) -> bool:
        return not self.failed

    @property
    def show_feedback(self) -> bool:
        return self.show_validation and not self.is_valid

    @property
    def show_success(self) -> bool:
        return bool(self.rules) and bool(self.value) and self.is_valid

    @property
    def heading(self) -> str:
        return RULE_HEADINGS.get(self.name, "Requirements")


@dataclass
class FormState:
    fields: List[FieldState]
    error: Optional[str] = None
    success: Optional[str] = None
    notice: Optional[str] = None

    def __getitem__(self, name: str) -> FieldState:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    @property
    def is_valid(self) -> bool:
        return all(f.is_valid for f in self.fields)

    def value(self, name: str) -> str:
        return self[name].value

    def submitted(self) -> "FormState":
        """Mark every field as touched so failing rules are shown."""
        for f in self.fields:
            f.show_validation = True
        return self

    def clear(self, *names: str) -> "FormState":
        for f in self.fields:
            if not names or f.name in names:
                f.value = ""
                f.show_validation = False
        return self


def login_form(email: str = "", password: str = "") -> FormState:
    return FormState(fields=[
        FieldState("email", "Email", email, EMAIL_RULES, kind="email"),
        FieldState("password", "Password", password, PASSWORD_RULES, kind="password"),
    ])


def signup_form(email: str = "", password: str = "", fullname: str = "") -> FormState:
    return FormState(fields=[
        FieldState("fullname", "Full Name", fullname, FULL_NAME_RULES),
        FieldState("email", "Email", email, EMAIL_RULES, kind="email"),
        FieldState("password", "Password", password, PASSWORD_RULES, kind="password"),
    ])


def forgot_password_form(email: str = "") -> FormState:
    return FormState(fields=[
        FieldState("email", "Email address", email, EMAIL_RULES, kind="email"),
    ])


@dataclass
class ResetPasswordFormState(FormState):
    @property
    def passwords_match(self) -> bool:
        confirm = self.value("confirm_password")
        return confirm != "" and confirm == self.value("password")

    @property
    def is_valid(self) -> bool:
        return super().is_valid and self.passwords_match


def reset_password_form(password: str = "", confirm_password: str = "") -> ResetPasswordFormState:
    return ResetPasswordFormState(fields=[
        FieldState("password", "New Password", password, PASSWORD_RULES, kind="password"),
        FieldState("confirm_password", "Confirm Password", confirm_password, kind="password"),
    ])


def account_form(full_name: str = "", email: str = "") -> FormState:
    return FormState(fields=[
        FieldState("full_name", "Full Name", full_name, PROFILE_NAME_RULES),
        FieldState("email", "Profile Email", email, EMAIL_RULES, kind="email"),
    ])
