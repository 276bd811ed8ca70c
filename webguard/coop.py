"""Cross-Origin-Opener-Policy protection."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from webguard.core import Request, ResponseWriter, Result, not_written


class Mode(str, enum.Enum):
    """A COOP mode."""

    SAME_ORIGIN = "same-origin"
    SAME_ORIGIN_ALLOW_POPUPS = "same-origin-allow-popups"
    UNSAFE_NONE = "unsafe-none"


@dataclass(frozen=True)
class Policy:
    """A Cross-Origin-Opener-Policy value."""

    mode: Mode
    reporting_group: str = ""
    report_only: bool = False

    def __str__(self) -> str:
        mode = Mode(self.mode).value
        if not self.reporting_group:
            return mode
        return f'{mode}; report-to "{self.reporting_group}"'


def _serialize(policies: tuple[Policy, ...]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    enforced = tuple(str(p) for p in policies if not p.report_only)
    reported = tuple(str(p) for p in policies if p.report_only)
    return enforced, reported


@dataclass(frozen=True)
class Overrider:
    """A configuration that overrides COOP for a specific handler."""

    enforced: tuple[str, ...] = ()
    report_only: tuple[str, ...] = ()


@dataclass(frozen=True)
class Interceptor:
    """Sets the enforced and report-only COOP headers."""

    enforced: tuple[str, ...] = ()
    report_only: tuple[str, ...] = ()

    def before(self, w: ResponseWriter, r: Request, cfg: Any = None) -> Result:
        """Claim and set the COOP headers, honouring an Overrider if given."""
        if cfg is not None:
            if not isinstance(cfg, Overrider):
                raise TypeError(f"unsupported COOP configuration: {cfg!r}")
            return Interceptor(cfg.enforced, cfg.report_only).before(w, r, None)
        w.headers.claim("Cross-Origin-Opener-Policy")(self.enforced)
        w.headers.claim("Cross-Origin-Opener-Policy-Report-Only")(self.report_only)
        return not_written()

    def commit(self, w: ResponseWriter, r: Request, resp: Any, cfg: Any = None) -> None:
        """Leave the response as it is; reject configurations that are not Overriders."""
        if cfg is not None and not self.match(cfg):
            raise TypeError(f"unsupported COOP configuration: {cfg!r}")

    def match(self, cfg: Any) -> bool:
        """Recognize Overriders as COOP configurations."""
        return isinstance(cfg, Overrider)


def new_interceptor(*args: Policy) -> Interceptor:
    """Build an interceptor applying the given policies."""
    return Interceptor(*_serialize(args))


def default(report_group: str) -> Interceptor:
    """Return a same-origin enforcing interceptor with the given, possibly empty, report group."""
    return new_interceptor(Policy(Mode.SAME_ORIGIN, reporting_group=report_group))


def override(reason: str, *args: Policy) -> Overrider:
    """Build an Overrider with the given policies."""
    return Overrider(*_serialize(args))