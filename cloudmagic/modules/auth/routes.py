import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, WebSocket
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState

from cloudmagic.config import settings
from cloudmagic.core.dependencies import get_auth_service, get_user_context
from cloudmagic.core.rate_limit import auth_rate_limit
from cloudmagic.core.session import UserContext
from cloudmagic.core.templating import render
from cloudmagic.database.supabase_client import bind_supabase
from cloudmagic.modules.auth.forms import (
    LOGIN_ERRORS,
    describe_error,
    forgot_password_form,
    login_form,
    reset_password_form,
    signup_form,
)
from cloudmagic.modules.auth.poller import VerificationPoller
from cloudmagic.modules.auth.schemas import AuthErrorCode, AuthResult, VerificationStatus
from cloudmagic.modules.auth.service import AuthService
from cloudmagic.modules.auth.validators import validate_login, validate_signup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

ERROR_STATUS = {
    AuthErrorCode.MISSING_FIELDS: 400,
    AuthErrorCode.PASSWORD_MISMATCH: 400,
    AuthErrorCode.INVALID_PASSWORD: 400,
    AuthErrorCode.NO_EMAIL: 400,
    AuthErrorCode.USER_NOT_FOUND: 404,
    AuthErrorCode.USER_EXISTS: 409,
    AuthErrorCode.INVALID_CREDENTIALS: 401,
    AuthErrorCode.NO_USER: 401,
    AuthErrorCode.USER_FETCH_ERROR: 400,
    AuthErrorCode.UNEXPECTED_ERROR: 500,
}


def status_for(result: AuthResult) -> int:
    """Backend rejections not listed above are upstream failures."""
    return ERROR_STATUS.get(result.error_code, 502)


def good_redirect(target: Optional[str]) -> Optional[str]:
    """Only same-site absolute paths are followed after login."""
    if not target or len(target) >= 300:
        return None
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return None
    return target


def verification_payload(result: AuthResult) -> dict:
    return VerificationStatus(
        email=result.email,
        is_verified=bool(result.is_verified),
        error=result.error,
    ).model_dump(mode="json")


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    redirect_to: Optional[str] = None,
    error: Optional[str] = None,
    reset: bool = False,
    signed_out: bool = False,
    context: UserContext = Depends(get_user_context),
):
    form = login_form()
    if error:
        form.error = LOGIN_ERRORS.get(error, "Something went wrong. Please try again.")
    if reset:
        form.notice = "Your password has been reset. Please log in with your new password."
    elif signed_out:
        form.notice = "You have been signed out."
    return render(request, "auth/login.html", context, form=form, redirect_to=good_redirect(redirect_to))


@router.post("/login", response_class=HTMLResponse)
@auth_rate_limit
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    redirect_to: Optional[str] = Form(None),
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    """Log in with email and password, then go to the account page (or the guarded page that sent us here)."""
    form = login_form(email, password).submitted()
    redirect_to = good_redirect(redirect_to)

    if not form.is_valid:
        form.error = validate_login(email, password).message
        return render(request, "auth/login.html", context, status_code=400, form=form, redirect_to=redirect_to)

    result = service.login(email, password)
    if not result.success:
        form.error = describe_error(result.error)
        status_code = 401 if result.error_code == AuthErrorCode.USER_NOT_FOUND else status_for(result)
        return render(request, "auth/login.html", context, status_code=status_code, form=form, redirect_to=redirect_to)

    return RedirectResponse(redirect_to or result.redirect_to, status_code=303)


@router.get("/signup", response_class=HTMLResponse)
def signup_page(request: Request, context: UserContext = Depends(get_user_context)):
    return render(request, "auth/signup.html", context, form=signup_form())


@router.post("/signup", response_class=HTMLResponse)
@auth_rate_limit
def signup(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    fullname: str = Form(""),
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    """Create the account; the user must follow the emailed link before using the app."""
    form = signup_form(email, password, fullname).submitted()

    if not form.is_valid:
        form.error = validate_signup(email, password, fullname).message or "Please ensure all fields are valid."
        return render(request, "auth/signup.html", context, status_code=400, form=form)

    result = service.signup(email, password, fullname)
    if not result.success:
        form.error = describe_error(result.error) or "Registration failed. Try again."
        return render(request, "auth/signup.html", context, status_code=status_for(result), form=form)

    form.clear()
    form.success = "Account created! Check your email for a verification link."
    return render(request, "auth/signup.html", context, form=form, redirect_after="/auth/login", email=result.email)


@router.get("/google")
def google_sign_in(
    request: Request,
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    result = service.sign_in_with_google()
    if not result.success:
        form = login_form()
        form.error = describe_error(result.error)
        return render(request, "auth/login.html", context, status_code=status_for(result), form=form, redirect_to=None)
    return RedirectResponse(result.url, status_code=303)


@router.get("/callback")
def auth_callback(code: Optional[str] = None, service: AuthService = Depends(get_auth_service)):
    """Landing point for Google OAuth and the signup verification link."""
    if not code:
        return RedirectResponse("/auth/login?error=no_code", status_code=303)

    result = service.handle_oauth_callback(code)
    if not result.success:
        logger.warning(f"Auth callback failed: {result.error_code}")
        return RedirectResponse("/auth/login?error=auth_failed", status_code=303)
    return RedirectResponse("/", status_code=303)


@router.get("/forgot-password", response_class=HTMLResponse)
def forgot_password_page(request: Request, context: UserContext = Depends(get_user_context)):
    return render(request, "auth/forgot_password.html", context, form=forgot_password_form(), sent_to=None)


@router.post("/forgot-password", response_class=HTMLResponse)
@auth_rate_limit
def forgot_password(
    request: Request,
    email: str = Form(""),
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    form = forgot_password_form(email).submitted()
    if not form.is_valid:
        form.error = "Please enter a valid email address"
        return render(request, "auth/forgot_password.html", context, status_code=400, form=form, sent_to=None)

    result = service.forgot_password(email)
    if not result.success:
        form.error = describe_error(result.error)
        return render(request, "auth/forgot_password.html", context, status_code=status_for(result), form=form, sent_to=None)

    form.clear()
    return render(request, "auth/forgot_password.html", context, form=form, sent_to=email)


@router.get("/reset-password", response_class=HTMLResponse)
def reset_password_page(
    request: Request,
    code: Optional[str] = None,
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    """The emailed reset link lands here with a recovery code."""
    form = reset_password_form()
    if code:
        result = service.exchange_code(code)
        if not result.success:
            form.error = describe_error(result.error)
            return render(request, "auth/reset_password.html", context, status_code=status_for(result), form=form)
        # Drop the one-time code from the address bar; the session is in the cookies now.
        return RedirectResponse("/auth/reset-password", status_code=303)
    return render(request, "auth/reset_password.html", context, form=form)


@router.post("/reset-password", response_class=HTMLResponse)
@auth_rate_limit
def reset_password(
    request: Request,
    password: str = Form(""),
    confirm_password: str = Form(""),
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    form = reset_password_form(password, confirm_password).submitted()
    if not form.is_valid:
        form.error = "Passwords do not match" if form["password"].is_valid else "Please enter a valid password"
        return render(request, "auth/reset_password.html", context, status_code=400, form=form)

    result = service.reset_password(password, confirm_password)
    if not result.success:
        form.error = describe_error(result.error)
        return render(request, "auth/reset_password.html", context, status_code=status_for(result), form=form)

    return RedirectResponse("/auth/login?reset=1", status_code=303)


@router.get("/verify-email", response_class=HTMLResponse)
def verify_email_page(
    request: Request,
    email: Optional[str] = None,
    context: UserContext = Depends(get_user_context),
):
    shown_email = email or (context.user.email if context.user else None)
    return render(
        request,
        "auth/verify_email.html",
        context,
        email=shown_email,
        resend_status=None,
        poll_interval=settings.verification_poll_interval_seconds,
    )


@router.post("/verify-email/resend", response_class=HTMLResponse)
@auth_rate_limit
def resend_verification(
    request: Request,
    service: AuthService = Depends(get_auth_service),
    context: UserContext = Depends(get_user_context),
):
    result = service.resend_verification_email()
    if not result.success:
        logger.warning(f"Resend verification failed: {result.error_code}")
    return render(
        request,
        "auth/verify_email.html",
        context,
        status_code=200 if result.success else status_for(result),
        email=result.email or (context.user.email if context.user else None),
        resend_status="success" if result.success else "error",
        poll_interval=settings.verification_poll_interval_seconds,
    )


@router.get("/verify-email/status", response_model=VerificationStatus)
def verification_status(service: AuthService = Depends(get_auth_service)):
    return verification_payload(service.check_email_verification())


async def close_if_open(websocket: WebSocket) -> None:
    """Close from our side unless either end already dropped the connection."""
    if websocket.application_state != WebSocketState.CONNECTED:
        return
    if websocket.client_state != WebSocketState.CONNECTED:
        return
    await websocket.close()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/verify-email/ws")
async def verification_updates(websocket: WebSocket):
    """Push verification status while the verify-email page is open."""
    await websocket.accept()
    service = AuthService(bind_supabase(websocket))

    async def check() -> AuthResult:
        return await run_in_threadpool(service.check_email_verification)

    async def publish(result: AuthResult) -> None:
        await websocket.send_json(verification_payload(result))

    poller = VerificationPoller(check, publish, interval=settings.verification_poll_interval_seconds)
    poller.start()
    disconnect = asyncio.ensure_future(_wait_for_disconnect(websocket))
    finished = asyncio.ensure_future(poller.wait())
    try:
        done, _ = await asyncio.wait({disconnect, finished}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        await poller.stop()
        disconnect.cancel()
        finished.cancel()

    if disconnect not in done:
        await close_if_open(websocket)


@router.post("/logout")
def logout(service: AuthService = Depends(get_auth_service)):
    result = service.sign_out()
    if not result.success:
        return RedirectResponse("/error", status_code=303)
    return RedirectResponse("/auth/login?signed_out=1", status_code=303)
