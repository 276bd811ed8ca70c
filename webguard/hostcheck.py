"""Reject requests whose Host is not in an allowlist.

Protects against DNS rebinding and HTTP request smuggling.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from webguard.core import Request, ResponseWriter, Result, not_written


class Interceptor:
    """Checks whether the Host of the incoming request is allowed."""

    # No per-handler configurations are supported.
    _config_types: tuple[type, ...] = ()

    def __init__(self, *args: str) -> None:
        self.hosts = frozenset(args)

    def before(self, w: ResponseWriter, r: Request, cfg: Any = None) -> Result:
        """Respond with 404 Not Found if the request's host is not allowed."""
        if r.host() not in self.hosts:
            return w.write_error(HTTPStatus.NOT_FOUND)
        return not_written()

    def commit(self, w: ResponseWriter, r: Request, resp: Any, cfg: Any = None) -> None:
        """Leave the response as it is; reject configurations this interceptor does not know."""
        if cfg is not None and not self.match(cfg):
            raise TypeError(f"unsupported host check configuration: {cfg!r}")

    def match(self, cfg: Any) -> bool:
        """Tell whether cfg is a configuration for this interceptor; none exist."""
        return isinstance(cfg, self._config_types)