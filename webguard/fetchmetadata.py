"""Fetch Metadata policies protecting applications against cross-origin attacks."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Protocol

from webguard.core import Request, ResponseWriter, Result, not_written

_NAVIGATIONAL_MODES = frozenset({"navigate", "nested-navigate"})
_NAVIGATIONAL_DESTS = frozenset({"document", "nested-document"})
_STATE_PRESERVING_METHODS = frozenset({"GET", "HEAD"})


class RequestLogger(Protocol):
    """Receives Fetch Metadata policy violations."""

    def log(self, request: Request, navigation_isolation: bool) -> None:
        """Record a violation by request; navigation_isolation tells which policy failed."""


@dataclass(frozen=True)
class _Disable:
    skip_reporting: bool = False


def disable(reason: str, skip_reporting: bool) -> _Disable:
    """Return a configuration that disables protection; violations are still
    reported unless skip_reporting is true."""
    return _Disable(skip_reporting=skip_reporting)


@dataclass
class Interceptor:
    """Applies the Resource Isolation and, optionally, Navigation Isolation policies.

    redirect_url, if set, is where requests rejected by Navigation Isolation are sent.
    """

    nav_isolation: bool = False
    redirect_url: str | None = None
    logger: RequestLogger | None = None
    _report_only: bool = field(default=False, init=False, repr=False)

    def _resource_isolation_ok(self, r: Request) -> bool:
        h = r.headers
        if h.get("Sec-Fetch-Site") != "cross-site":
            return True
        mode = h.get("Sec-Fetch-Mode")
        dest = h.get("Sec-Fetch-Dest")
        if not mode and not dest and r.method == "OPTIONS":
            return True
        return (
            mode in _NAVIGATIONAL_MODES
            and dest in _NAVIGATIONAL_DESTS
            and r.method in _STATE_PRESERVING_METHODS
        )

    def _navigation_isolation_ok(self, r: Request) -> bool:
        h = r.headers
        return not (
            self.nav_isolation
            and h.get("Sec-Fetch-Site") == "cross-site"
            and h.get("Sec-Fetch-Mode") in _NAVIGATIONAL_MODES
        )

    def set_report_only(self) -> None:
        """Let violating requests pass but report them; requires a logger."""
        if self.logger is None:
            raise ValueError("logging service required for Fetch Metadata report mode")
        self._report_only = True

    def set_enforce(self) -> None:
        """Reject requests that violate the policy."""
        self._report_only = False

    def before(self, w: ResponseWriter, r: Request, cfg: Any = None) -> Result:
        """Reject, redirect or report requests that violate the policies."""
        nav = not self._navigation_isolation_ok(r)
        rejected = nav or not self._resource_isolation_ok(r)
        if not rejected:
            return not_written()

        if isinstance(cfg, _Disable):
            if not cfg.skip_reporting and self.logger is not None:
                self.logger.log(r, nav)
            return not_written()

        if self.logger is not None:
            self.logger.log(r, nav)
        if self._report_only:
            return not_written()
        if nav and self.redirect_url is not None:
            return w.redirect(r, self.redirect_url, HTTPStatus.SEE_OTHER)
        return w.write_error(HTTPStatus.FORBIDDEN)

    def commit(self, w: ResponseWriter, r: Request, resp: Any, cfg: Any = None) -> None:
        """Leave the response as it is; reject configurations other than disable()."""
        if cfg is not None and not self.match(cfg):
            raise TypeError(f"unsupported Fetch Metadata configuration: {cfg!r}")

    def match(self, cfg: Any) -> bool:
        """Recognize configurations that disable Fetch Metadata protection."""
        return isinstance(cfg, _Disable)