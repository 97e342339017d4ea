import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from cloudmagic.config import settings
from cloudmagic.core.dependencies import get_user_context
from cloudmagic.core.middleware import RouteGuardMiddleware, SecurityHeadersMiddleware
from cloudmagic.core.rate_limit import limiter
from cloudmagic.core.session import UserContext
from cloudmagic.core.templating import render
from cloudmagic.modules.auth import routes as auth_routes
from cloudmagic.modules.users import routes as users_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application startup ({settings.environment})")
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("SUPABASE_URL / SUPABASE_KEY are not set; auth calls will fail")
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Last added runs first: headers wrap everything, the guard runs before the limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RouteGuardMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(auth_routes.router)
app.include_router(users_routes.router)


@app.get("/", response_class=HTMLResponse)
def home(request: Request, context: UserContext = Depends(get_user_context)):
    return render(request, "home.html", context)


@app.get("/error", response_class=HTMLResponse)
def error_page(request: Request, context: UserContext = Depends(get_user_context)):
    return render(request, "error.html", context)


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Ready once the Supabase settings are present."""
    if not settings.supabase_url or not settings.supabase_key:
        return JSONResponse(status_code=503, content={"status": "not ready"})
    return {"status": "ready"}
