"""HTTP Strict Transport Security.

Redirects HTTP traffic to HTTPS and sets Strict-Transport-Security on HTTPS
responses, unless running in local development mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from http import HTTPStatus
from typing import Any, ClassVar
from urllib.parse import urlsplit

from webguard.core import Request, ResponseWriter, Result, is_local_dev, not_written

_TWO_YEARS = timedelta(seconds=63072000)


@dataclass(frozen=True)
class Interceptor:
    """Applies HSTS to responses.

    max_age must not be negative; it is truncated to whole seconds.
    """

    max_age: timedelta = timedelta(0)
    disable_include_subdomains: bool = False
    preload: bool = False
    behind_proxy: bool = False

    # No per-handler configurations are supported.
    _config_types: ClassVar[tuple[type, ...]] = ()

    def before(self, w: ResponseWriter, r: Request, cfg: Any = None) -> Result:
        """Redirect plain HTTP to HTTPS, or set Strict-Transport-Security."""
        if is_local_dev():
            return not_written()

        if self.max_age < timedelta(0):
            return w.write_error(HTTPStatus.INTERNAL_SERVER_ERROR)

        if not self.behind_proxy and not r.tls:
            secure = urlsplit(r.url)._replace(scheme="https").geturl()
            return w.redirect(r, secure, HTTPStatus.MOVED_PERMANENTLY)

        parts = [f"max-age={int(self.max_age.total_seconds())}"]
        if not self.disable_include_subdomains:
            parts.append("includeSubDomains")
        if self.preload:
            parts.append("preload")
        set_header = w.headers.claim("Strict-Transport-Security")
        set_header(["; ".join(parts)])
        return not_written()

    def commit(self, w: ResponseWriter, r: Request, resp: Any, cfg: Any = None) -> None:
        """Leave the response as it is; reject configurations this interceptor does not know."""
        if cfg is not None and not self.match(cfg):
            raise TypeError(f"unsupported HSTS configuration: {cfg!r}")

    def match(self, cfg: Any) -> bool:
        """Tell whether cfg is a configuration for this interceptor; none exist."""
        return isinstance(cfg, self._config_types)


def default() -> Interceptor:
    """Return an interceptor with a two year max-age and includeSubDomains."""
    return Interceptor(max_age=_TWO_YEARS)