from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from cloudmagic.config import settings
from cloudmagic.core.session import UserContext

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["app_name"] = settings.app_name


def render(request: Request, name: str, context: UserContext, status_code: int = 200, **data):
    """Render a page with the request's user context available as `current_user`."""
    return templates.TemplateResponse(
        request,
        name,
        {"current_user": context, **data},
        status_code=status_code,
    )
