"""The Report-To header of the Reporting API.

Defines reporting groups for use with COOP and CSP.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from webguard.core import Request, ResponseWriter, Result, not_written

DEFAULT_MAX_AGE = 7 * 24 * 60 * 60
REPORT_TO_HEADER_KEY = "Report-To"

_HTML_UNSAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _to_compact_json(value: Any) -> str:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _HTML_UNSAFE.items():
        text = text.replace(char, escaped)
    return text


@dataclass(frozen=True)
class Endpoint:
    """A reporting endpoint; priority and weight are omitted when zero."""

    url: str
    priority: int = 0
    weight: int = 0

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"url": self.url}
        if self.priority:
            d["priority"] = self.priority
        if self.weight:
            d["weight"] = self.weight
        return d


@dataclass(frozen=True)
class Group:
    """A Report-To endpoint group."""

    name: str = ""
    include_subdomains: bool = False
    max_age: int = 0
    endpoints: tuple[Endpoint, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.name:
            d["group"] = self.name
        if self.include_subdomains:
            d["include_subdomains"] = True
        d["max_age"] = self.max_age
        d["endpoints"] = [e.to_dict() for e in self.endpoints]
        return d

    def to_json(self) -> str:
        """Serialize the group as a Report-To header value."""
        return _to_compact_json(self.to_dict())


def new_group(name: str, url: str, *args: str) -> Group:
    """Create a group with the default max age and one endpoint per URL."""
    return Group(
        name=name,
        max_age=DEFAULT_MAX_AGE,
        endpoints=tuple(Endpoint(url=u) for u in (url, *args)),
    )


class Interceptor:
    """Adds one Report-To header per configured group."""

    # No per-handler configurations are supported.
    _config_types: tuple[type, ...] = ()

    def __init__(self, *args: Group) -> None:
        self.values = tuple(group.to_json() for group in args)

    def before(self, w: ResponseWriter, r: Request, cfg: Any = None) -> Result:
        for value in self.values:
            w.headers.add(REPORT_TO_HEADER_KEY, value)
        return not_written()

    def commit(self, w: ResponseWriter, r: Request, resp: Any, cfg: Any = None) -> None:
        """Leave the response as it is; reject configurations this interceptor does not know."""
        if cfg is not None and not self.match(cfg):
            raise TypeError(f"unsupported Report-To configuration: {cfg!r}")

    def match(self, cfg: Any) -> bool:
        """Tell whether cfg is a configuration for this interceptor; none exist."""
        return isinstance(cfg, self._config_types)