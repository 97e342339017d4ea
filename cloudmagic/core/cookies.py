"""
Cookie-backed session storage for the Supabase client.

Supabase Auth persists the session (and the PKCE code verifier) through a
storage adapter with get_item/set_item/remove_item. Here the adapter reads the
incoming request cookies and records every write, so the middleware can copy
them onto the outgoing response.

Values are base64url encoded and split into ``name.0``, ``name.1``, ...
cookies when they exceed the chunk size, which keeps each cookie under the
browser limit.
"""
import base64
import logging
from typing import Dict, List, Mapping, Optional

from starlette.responses import Response
from supabase_auth import SyncSupportedStorage

logger = logging.getLogger(__name__)

ENCODING_PREFIX = "base64-"


def _encode(value: str) -> str:
    return ENCODING_PREFIX + base64.urlsafe_b64encode(value.encode()).decode()


def _decode(value: str) -> Optional[str]:
    if not value.startswith(ENCODING_PREFIX):
        return value
    try:
        return base64.urlsafe_b64decode(value[len(ENCODING_PREFIX):].encode()).decode()
    except (ValueError, UnicodeDecodeError):
        logger.warning("Discarding undecodable session cookie")
        return None


class CookieStorage(SyncSupportedStorage):
    def __init__(
        self,
        cookies: Mapping[str, str],
        max_age: int,
        chunk_size: int = 3180,
        secure: bool = False,
    ):
        self._cookies: Dict[str, str] = dict(cookies)
        self._pending: Dict[str, Optional[str]] = {}
        self.max_age = max_age
        self.chunk_size = chunk_size
        self.secure = secure

    def _chunk_names(self, key: str) -> List[str]:
        prefix = f"{key}."
        names = [
            name for name in self._cookies
            if name.startswith(prefix) and name[len(prefix):].isdigit()
        ]
        return sorted(names, key=lambda name: int(name[len(prefix):]))

    def get_item(self, key: str) -> Optional[str]:
        if key in self._cookies:
            return _decode(self._cookies[key])
        chunks = self._chunk_names(key)
        if not chunks:
            return None
        return _decode("".join(self._cookies[name] for name in chunks))

    def set_item(self, key: str, value: str) -> None:
        self._clear(key)
        encoded = _encode(value)
        if len(encoded) <= self.chunk_size:
            self._write(key, encoded)
            return
        for index, start in enumerate(range(0, len(encoded), self.chunk_size)):
            self._write(f"{key}.{index}", encoded[start:start + self.chunk_size])

    def remove_item(self, key: str) -> None:
        self._clear(key)

    def _write(self, name: str, value: str) -> None:
        self._cookies[name] = value
        self._pending[name] = value

    def _clear(self, key: str) -> None:
        names = self._chunk_names(key)
        if key in self._cookies:
            names.append(key)
        for name in names:
            del self._cookies[name]
            self._pending[name] = None

    @property
    def pending(self) -> Dict[str, Optional[str]]:
        """Cookies written (value) or removed (None) during this request."""
        return dict(self._pending)

    def apply(self, response: Response) -> None:
        for name, value in self._pending.items():
            if value is None:
                response.delete_cookie(name, path="/")
            else:
                response.set_cookie(
                    name,
                    value,
                    max_age=self.max_age,
                    path="/",
                    httponly=True,
                    samesite="lax",
                    secure=self.secure,
                )
        if self._pending:
            logger.debug("Applied %d session cookie change(s)", len(self._pending))
