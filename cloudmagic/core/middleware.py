"""
Route guard and response headers.

The guard runs on every navigation before a page renders. It resolves the
session user through the request's Supabase client, derives the auth state,
and either redirects or lets the request through. Session cookies written by
the client during the request (refreshes, sign-in, sign-out) are copied onto
whatever response goes back.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from cloudmagic.core.session import AuthState, UserContext, load_session_user
from cloudmagic.database.supabase_client import bind_supabase

logger = logging.getLogger(__name__)

HOME_PATH = "/"
LOGIN_PATH = "/auth/login"
SIGNUP_PATH = "/auth/signup"
VERIFY_EMAIL_PATH = "/auth/verify-email"

PASSTHROUGH_PREFIXES = ("/static", "/api", "/health", "/ready")


def is_passthrough(path: str) -> bool:
    return path.startswith(PASSTHROUGH_PREFIXES) or "favicon.ico" in path


def login_redirect(path: str) -> str:
    return f"{LOGIN_PATH}?{urlencode({'redirect_to': path})}"


def guard_decision(path: str, state: AuthState) -> Optional[str]:
    """Return where to redirect the request, or None to let it through."""
    if path.startswith("/auth/"):
        if path == VERIFY_EMAIL_PATH:
            return LOGIN_PATH if state == AuthState.UNAUTHENTICATED else None
        if state == AuthState.VERIFIED and path in (LOGIN_PATH, SIGNUP_PATH):
            return HOME_PATH
        return None

    if state == AuthState.UNAUTHENTICATED:
        return login_redirect(path)
    if state == AuthState.UNVERIFIED:
        return VERIFY_EMAIL_PATH
    return None


class RouteGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_passthrough(path):
            return await call_next(request)

        supabase = bind_supabase(request)
        user = await run_in_threadpool(load_session_user, supabase)
        context = UserContext(user).subscribe(supabase)
        request.state.user_context = context
        try:
            target = guard_decision(path, context.state)
            if target is not None:
                logger.info(f"Route guard: {context.state.value} request to {path} redirected to {target}")
                response = RedirectResponse(target, status_code=307)
            else:
                response = await call_next(request)
        finally:
            context.close()

        request.state.cookie_storage.apply(response)
        return response


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"x-content-type-options", b"nosniff"),
                    (b"x-frame-options", b"DENY"),
                    (b"x-xss-protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)
