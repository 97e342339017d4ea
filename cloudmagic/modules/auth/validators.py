"""
Field validation rules shared by the auth and account forms.

Every rule is a pure predicate over a string. Nothing here raises: callers get
booleans, the failing rules, or a ValidationResult with a message.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,6}")
SPECIAL_CHARACTERS = "@$!%*?&"


@dataclass(frozen=True)
class ValidationRule:
    id: str
    description: str
    validate: Callable[[str], bool]


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    message: Optional[str] = None


PASSWORD_RULES: List[ValidationRule] = [
    ValidationRule(
        "length",
        "At least 8 characters long",
        lambda password: len(password) >= 8,
    ),
    ValidationRule(
        "uppercase",
        "Contains at least one uppercase letter",
        lambda password: re.search(r"[A-Z]", password) is not None,
    ),
    ValidationRule(
        "lowercase",
        "Contains at least one lowercase letter",
        lambda password: re.search(r"[a-z]", password) is not None,
    ),
    ValidationRule(
        "number",
        "Contains at least one number",
        lambda password: re.search(r"[0-9]", password) is not None,
    ),
    ValidationRule(
        "special",
        f"Contains at least one special character ({SPECIAL_CHARACTERS})",
        lambda password: any(c in SPECIAL_CHARACTERS for c in password),
    ),
]

EMAIL_RULES: List[ValidationRule] = [
    ValidationRule(
        "format",
        "Valid email format (e.g., user@example.com)",
        lambda email: EMAIL_PATTERN.fullmatch(email) is not None,
    ),
]

FULL_NAME_RULES: List[ValidationRule] = [
    ValidationRule(
        "length",
        "At least 2 characters long",
        lambda name: len(name) >= 2,
    ),
    ValidationRule(
        "lettersOnly",
        "Contains only letters and spaces",
        lambda name: re.fullmatch(r"[a-zA-Z\s]+", name) is not None,
    ),
]

# Account page: names come from signup or an OAuth provider and are kept as given
PROFILE_NAME_RULES: List[ValidationRule] = [
    ValidationRule(
        "required",
        "Must not be empty",
        lambda name: name.strip() != "",
    ),
]

EMAIL_MESSAGE = "Invalid email address"
PASSWORD_MESSAGE = (
    "Password must contain at least 8 characters, one uppercase letter, "
    "one lowercase letter, one number and one special character"
)
FULL_NAME_MESSAGE = (
    "Full name must contain only letters and spaces, and be at least 2 characters long"
)


def failed_rules(value: Optional[str], rules: List[ValidationRule]) -> List[ValidationRule]:
    value = value or ""
    return [rule for rule in rules if not rule.validate(value)]


def passes(value: Optional[str], rules: List[ValidationRule]) -> bool:
    """True when every rule in the set holds for the value."""
    return not failed_rules(value, rules)


def _result(value: Optional[str], rules: List[ValidationRule], message: str) -> ValidationResult:
    if passes(value, rules):
        return ValidationResult(is_valid=True)
    return ValidationResult(is_valid=False, message=message)


def email_validates(email: Optional[str]) -> ValidationResult:
    return _result(email, EMAIL_RULES, EMAIL_MESSAGE)


def password_validates(password: Optional[str]) -> ValidationResult:
    return _result(password, PASSWORD_RULES, PASSWORD_MESSAGE)


def full_name_validates(full_name: Optional[str]) -> ValidationResult:
    return _result(full_name, FULL_NAME_RULES, FULL_NAME_MESSAGE)


def validate_login(email: Optional[str], password: Optional[str]) -> ValidationResult:
    """First failing field result for the login form, in field order."""
    for result in (email_validates(email), password_validates(password)):
        if not result.is_valid:
            return result
    return ValidationResult(is_valid=True)


def validate_signup(
    email: Optional[str], password: Optional[str], full_name: Optional[str]
) -> ValidationResult:
    """First failing field result for the signup form, in field order."""
    for result in (
        email_validates(email),
        password_validates(password),
        full_name_validates(full_name),
    ):
        if not result.is_valid:
            return result
    return ValidationResult(is_valid=True)
