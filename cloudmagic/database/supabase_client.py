from typing import Callable
from starlette.requests import HTTPConnection, Request
from supabase import create_client, Client
from supabase.client import ClientOptions
from cloudmagic.config import settings
from cloudmagic.core.cookies import CookieStorage

SupabaseFactory = Callable[[CookieStorage], Client]


def create_request_client(storage: CookieStorage) -> Client:
    """Client bound to one request's cookies. Sessions are never shared across requests."""
    return create_client(
        settings.supabase_url,
        settings.supabase_key,
        options=ClientOptions(
            storage=storage,
            flow_type="pkce",
            auto_refresh_token=False,
            persist_session=True,
        ),
    )


def create_cookie_storage(cookies) -> CookieStorage:
    return CookieStorage(
        cookies,
        max_age=settings.session_cookie_max_age,
        chunk_size=settings.session_cookie_chunk_size,
        secure=settings.is_production,
    )


def get_supabase_factory(request: HTTPConnection) -> SupabaseFactory:
    return getattr(request.app.state, "supabase_factory", create_request_client)


def bind_supabase(request: HTTPConnection) -> Client:
    """Create the storage and client for this request once, and keep them on request.state."""
    client = getattr(request.state, "supabase", None)
    if client is None:
        storage = create_cookie_storage(request.cookies)
        client = get_supabase_factory(request)(storage)
        request.state.cookie_storage = storage
        request.state.supabase = client
    return client


def get_supabase(request: Request) -> Client:
    return bind_supabase(request)
