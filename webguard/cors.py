"""An interceptor that handles CORS requests.

The content types "application/x-www-form-urlencoded", "multipart/form-data"
and "text/plain" are banned and result in 415 Unsupported Media Type. Every
CORS request must carry the header "X-Cors: 1" and the HEAD method is
disallowed. All of this is to prevent XSRF.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, ClassVar

from webguard.core import (
    NoContentResponse,
    Request,
    ResponseWriter,
    Result,
    canonical_header_key,
    not_written,
)

REQUIRED_HEADER = "X-Cors"

_DISALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/x-www-form-urlencoded",
        "multipart/form-data",
        "text/plain",
    }
)
_DEFAULT_MAX_AGE = 5


@dataclass
class Interceptor:
    """Handles CORS requests according to its settings.

    exposed_headers of None leaves Access-Control-Expose-Headers unset.
    max_age of 0 means 5 seconds.
    """

    allowed_origins: set[str] = field(default_factory=set)
    exposed_headers: list[str] | None = None
    allow_credentials: bool = False
    max_age: int = 0
    _allowed_headers: frozenset[str] = field(default_factory=frozenset, init=False, repr=False)

    # No per-handler configurations are supported.
    _config_types: ClassVar[tuple[type, ...]] = ()

    def set_allowed_headers(self, *args: str) -> None:
        """Set the headers allowed in Access-Control-Allow-Headers; "*" is ignored."""
        self._allowed_headers = frozenset(canonical_header_key(h) for h in args if h != "*")

    def before(self, w: ResponseWriter, r: Request, cfg: Any = None) -> Result:
        """Validate the request and set the appropriate CORS response headers."""
        origin = r.headers.get("Origin")
        if origin and origin not in self.allowed_origins:
            return w.write_error(HTTPStatus.FORBIDDEN)

        h = w.headers
        allow_origin = h.claim("Access-Control-Allow-Origin")
        if h.is_claimed("Vary"):
            return w.write_error(HTTPStatus.INTERNAL_SERVER_ERROR)
        allow_credentials = h.claim("Access-Control-Allow-Credentials")

        if r.method == "OPTIONS":
            status = self._preflight(w, r)
        elif r.method == "HEAD":
            status = HTTPStatus.METHOD_NOT_ALLOWED
        else:
            status = self._request(w, r)

        if status is not None and status != HTTPStatus.NO_CONTENT:
            return w.write_error(status)

        if origin:
            allow_origin([origin])
            _append_to_vary(w, "Origin")
        if r.headers.get("Cookie") and self.allow_credentials:
            allow_credentials(["true"])

        if status == HTTPStatus.NO_CONTENT:
            return w.write(NoContentResponse())
        return not_written()

    def commit(self, w: ResponseWriter, r: Request, resp: Any, cfg: Any = None) -> None:
        """Leave the response as it is; reject configurations this interceptor does not know."""
        if cfg is not None and not self.match(cfg):
            raise TypeError(f"unsupported CORS configuration: {cfg!r}")

    def match(self, cfg: Any) -> bool:
        """Tell whether cfg is a configuration for this interceptor; none exist."""
        return isinstance(cfg, self._config_types)

    def _preflight(self, w: ResponseWriter, r: Request) -> HTTPStatus:
        rh = r.headers
        if not rh.get("Origin"):
            return HTTPStatus.FORBIDDEN

        method = rh.get("Access-Control-Request-Method")
        if not method or method == "HEAD":
            return HTTPStatus.FORBIDDEN

        requested = rh.get("Access-Control-Request-Headers")
        if requested:
            for name in requested.split(", "):
                key = canonical_header_key(name)
                if key not in self._allowed_headers and key != REQUIRED_HEADER:
                    return HTTPStatus.FORBIDDEN

        wh = w.headers
        allow_methods = wh.claim("Access-Control-Allow-Methods")
        allow_headers = wh.claim("Access-Control-Allow-Headers")
        max_age = wh.claim("Access-Control-Max-Age")

        allow_methods([method])
        if requested:
            allow_headers([requested])
        max_age([str(self.max_age or _DEFAULT_MAX_AGE)])
        return HTTPStatus.NO_CONTENT

    def _request(self, w: ResponseWriter, r: Request) -> HTTPStatus | None:
        h = r.headers
        if h.get(REQUIRED_HEADER) != "1":
            return HTTPStatus.PRECONDITION_FAILED

        content_type = h.get("Content-Type")
        if not content_type or content_type in _DISALLOWED_CONTENT_TYPES:
            return HTTPStatus.UNSUPPORTED_MEDIA_TYPE

        expose_headers = w.headers.claim("Access-Control-Expose-Headers")
        if self.exposed_headers is not None:
            expose_headers([", ".join(self.exposed_headers)])
        return None


def _append_to_vary(w: ResponseWriter, value: str) -> None:
    current = w.headers.get("Vary")
    w.headers.set("Vary", f"{current}, {value}" if current else value)


def default(*args: str) -> Interceptor:
    """Create an interceptor allowing the given origins, with default settings."""
    return Interceptor(allowed_origins=set(args))