"""
Core dependencies for services and the per-request user context
"""

from fastapi import Depends, HTTPException, Request, status
from supabase import Client

from cloudmagic.core.session import SessionUser, UserContext, load_session_user
from cloudmagic.database.supabase_client import get_supabase
from cloudmagic.modules.auth.service import AuthService
from cloudmagic.modules.users.service import ProfileService


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


def get_user_context(request: Request, supabase: Client = Depends(get_supabase)) -> UserContext:
    """User context built by the route guard, or a fresh one for paths the guard skips."""
    context = getattr(request.state, "user_context", None)
    if context is None:
        context = UserContext(load_session_user(supabase))
        request.state.user_context = context
    return context


def require_session_user(context: UserContext = Depends(get_user_context)) -> SessionUser:
    if context.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return context.user
