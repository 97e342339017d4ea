import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from cloudmagic.core.dependencies import get_profile_service, get_user_context, require_session_user
from cloudmagic.core.rate_limit import auth_rate_limit
from cloudmagic.core.session import SessionUser, UserContext
from cloudmagic.core.templating import render
from cloudmagic.modules.auth.forms import account_form
from cloudmagic.modules.users.schemas import ProfileUpdate
from cloudmagic.modules.users.service import ProfileService, ProfileUpdateError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["account"])


@router.get("", response_class=HTMLResponse)
def account_page(
    request: Request,
    user: SessionUser = Depends(require_session_user),
    service: ProfileService = Depends(get_profile_service),
    context: UserContext = Depends(get_user_context),
):
    """Profile settings for the signed-in user"""
    form = account_form()
    try:
        profile = service.get_profile(user.id)
    except Exception as e:
        logger.error(f"Error loading profile {user.id}: {e}")
        form.error = "Error loading user data"
        return render(request, "account.html", context, status_code=502, form=form, user=user)

    if profile is not None:
        form = account_form(profile.full_name or "", profile.email or "")
    return render(request, "account.html", context, form=form, user=user)


@router.post("", response_class=HTMLResponse)
@auth_rate_limit
def update_account(
    request: Request,
    full_name: str = Form(""),
    email: str = Form(""),
    user: SessionUser = Depends(require_session_user),
    service: ProfileService = Depends(get_profile_service),
    context: UserContext = Depends(get_user_context),
):
    form = account_form(full_name, email).submitted()
    if not form.is_valid:
        form.error = "Please ensure all fields are valid."
        return render(request, "account.html", context, status_code=400, form=form, user=user)

    try:
        profile = service.update_profile(user.id, ProfileUpdate(full_name=full_name, email=email))
    except ProfileUpdateError:
        form.error = "Error updating profile"
        return render(request, "account.html", context, status_code=502, form=form, user=user)

    form = account_form(profile.full_name or "", profile.email or "")
    form.success = "Profile updated successfully!"
    return render(request, "account.html", context, form=form, user=user)
