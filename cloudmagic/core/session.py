"""
Session user, authentication state and the per-request user context.

The identity itself is owned by Supabase. The app reads only the id, email,
email_confirmed_at and user_metadata of the current session user.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel
from supabase import Client

logger = logging.getLogger(__name__)

# Auth events after which the session carries a (possibly new) user
USER_EVENTS = {"SIGNED_IN", "TOKEN_REFRESHED", "USER_UPDATED", "PASSWORD_RECOVERY"}


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    UNVERIFIED = "authenticated-unverified"
    VERIFIED = "authenticated-verified"


class SessionUser(BaseModel):
    id: str
    email: Optional[str] = None
    email_confirmed_at: Optional[datetime] = None
    user_metadata: Dict[str, Any] = {}

    @property
    def is_verified(self) -> bool:
        return self.email_confirmed_at is not None

    @classmethod
    def from_supabase(cls, user) -> "SessionUser":
        return cls(
            id=str(user.id),
            email=user.email,
            email_confirmed_at=getattr(user, "email_confirmed_at", None),
            user_metadata=getattr(user, "user_metadata", None) or {},
        )


def auth_state_of(user: Optional[SessionUser]) -> AuthState:
    if user is None:
        return AuthState.UNAUTHENTICATED
    if user.is_verified:
        return AuthState.VERIFIED
    return AuthState.UNVERIFIED


def load_session_user(supabase: Client) -> Optional[SessionUser]:
    """Current session user, or None. A failed lookup counts as no session."""
    try:
        response = supabase.auth.get_user()
    except Exception as e:
        logger.warning(f"Session lookup failed, treating request as unauthenticated: {e}")
        return None
    if not response or not response.user:
        return None
    return SessionUser.from_supabase(response.user)


class UserContext:
    """
    The signed-in user as seen by one request and its rendered pages.

    A context is built per request and handed to templates explicitly. While
    subscribed, it follows the client's auth state changes, so a page rendered
    after a sign-in or sign-out in the same request shows the new state.
    """

    def __init__(self, user: Optional[SessionUser] = None):
        self.user = user
        self._subscription = None

    @property
    def state(self) -> AuthState:
        return auth_state_of(self.user)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_verified(self) -> bool:
        return self.user is not None and self.user.is_verified

    @property
    def display_name(self) -> Optional[str]:
        if self.user is None:
            return None
        metadata = self.user.user_metadata
        return metadata.get("full_name") or metadata.get("name") or self.user.email

    @property
    def initials(self) -> str:
        name = self.display_name or ""
        return "".join(part[0] for part in name.split() if part).upper()[:2]

    def subscribe(self, supabase: Client) -> "UserContext":
        if self._subscription is None:
            self._subscription = supabase.auth.on_auth_state_change(self._on_auth_change)
        return self

    def _on_auth_change(self, event, session) -> None:
        if event == "SIGNED_OUT":
            self.user = None
        elif event in USER_EVENTS and session is not None and session.user is not None:
            self.user = SessionUser.from_supabase(session.user)
        logger.debug(f"User context updated after {event}")

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
