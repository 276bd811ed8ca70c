"""Request, response and header primitives shared by the interceptors."""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Iterable, Mapping
from urllib.parse import urlsplit

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_DEFAULT_HOST = "example.com"


def canonical_header_key(name: str) -> str:
    """Return the canonical MIME form of a header name, e.g. "x-cors" -> "X-Cors".

    Names holding characters that are not valid in a header name are returned unchanged.
    """
    if not name or any(c not in _TOKEN_CHARS for c in name):
        return name
    chars = []
    upper = True
    for c in name:
        chars.append(c.upper() if upper else c.lower())
        upper = c == "-"
    return "".join(chars)


class HeaderClaimedError(RuntimeError):
    """Raised when a claimed header is claimed again or modified directly."""


class Headers:
    """Multi-valued, case-insensitive HTTP headers that can be claimed by one owner."""

    def __init__(self, initial: Mapping[str, Iterable[str] | str] | None = None) -> None:
        self._values: dict[str, list[str]] = {}
        self._claimed: set[str] = set()
        for name, value in (initial or {}).items():
            values = [value] if isinstance(value, str) else list(value)
            self._values[canonical_header_key(name)] = values

    def _check_unclaimed(self, key: str) -> None:
        if key in self._claimed:
            raise HeaderClaimedError(f"header {key!r} is claimed and cannot be modified")

    def get(self, name: str) -> str:
        """Return the first value of the header, or "" if it is absent."""
        values = self._values.get(canonical_header_key(name))
        return values[0] if values else ""

    def set(self, name: str, value: str) -> None:
        """Replace all values of the header with a single value."""
        key = canonical_header_key(name)
        self._check_unclaimed(key)
        self._values[key] = [value]

    def add(self, name: str, value: str) -> None:
        """Append a value to the header."""
        key = canonical_header_key(name)
        self._check_unclaimed(key)
        self._values.setdefault(key, []).append(value)

    def values(self, name: str) -> list[str]:
        """Return all values of the header."""
        return list(self._values.get(canonical_header_key(name), []))

    def claim(self, name: str) -> Callable[[Iterable[str]], None]:
        """Claim the header and return the only function allowed to set it.

        Setting an empty list of values removes the header.
        """
        key = canonical_header_key(name)
        if key in self._claimed:
            raise HeaderClaimedError(f"header {key!r} is already claimed")
        self._claimed.add(key)

        def setter(values: Iterable[str]) -> None:
            new_values = list(values)
            if new_values:
                self._values[key] = new_values
            else:
                self._values.pop(key, None)

        return setter

    def is_claimed(self, name: str) -> bool:
        return canonical_header_key(name) in self._claimed

    def as_dict(self) -> dict[str, list[str]]:
        """Return a plain copy of all headers."""
        return {key: list(values) for key, values in self._values.items()}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_header_key(name) in self._values


@dataclass
class Request:
    """An incoming HTTP request."""

    method: str
    url: str = "/"
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    tls: bool | None = None
    flight_values: dict[Any, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        parts = urlsplit(self.url)
        if not parts.netloc:
            path = self.url if self.url.startswith("/") else "/" + self.url
            self.url = f"http://{_DEFAULT_HOST}{path}"
            parts = urlsplit(self.url)
        if self.tls is None:
            self.tls = parts.scheme == "https"

    def host(self) -> str:
        """Return the host (with port, if any) the request was sent to."""
        return urlsplit(self.url).netloc.rpartition("@")[2]


@dataclass(frozen=True)
class NoContentResponse:
    """A response with status 204 and no body."""


@dataclass(frozen=True)
class RedirectResponse:
    """A redirect to another location."""

    request: Request
    location: str
    code: HTTPStatus


@dataclass
class TemplateResponse:
    """A response rendered from a template."""

    template: Any = None
    data: Any = None
    func_map: dict[str, Callable[..., Any]] | None = None


@dataclass(frozen=True)
class Result:
    """The outcome of an interceptor or handler step."""

    written: bool = False


_NOT_WRITTEN = Result(written=False)
_WRITTEN = Result(written=True)


def not_written() -> Result:
    """Return the result meaning that no response has been written yet."""
    return _NOT_WRITTEN


class ResponseWriter:
    """Collects the headers, status and body of a single response."""

    def __init__(self, headers: Headers | None = None) -> None:
        self.headers = headers if headers is not None else Headers()
        self.status = HTTPStatus.OK
        self.body = ""
        self.written: Any = None
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    def _commit(self) -> None:
        if self._committed:
            raise RuntimeError("a response has already been written")
        self._committed = True

    def write(self, response: Any) -> Result:
        """Write the given response."""
        self._commit()
        self.written = response
        if isinstance(response, NoContentResponse):
            self.status = HTTPStatus.NO_CONTENT
        elif isinstance(response, RedirectResponse):
            self.status = HTTPStatus(response.code)
            self.headers.set("Location", response.location)
        return _WRITTEN

    def write_error(self, status: int) -> Result:
        """Write an error response with the given status code."""
        code = HTTPStatus(status)
        self._commit()
        self.status = code
        self.body = f"{code.phrase}\n"
        return _WRITTEN

    def redirect(self, request: Request, location: str, status: int) -> Result:
        """Redirect the request to location with a 3xx status code."""
        code = HTTPStatus(status)
        if not 300 <= code < 400:
            raise ValueError(f"status {int(code)} is not a redirect status")
        return self.write(RedirectResponse(request=request, location=location, code=code))


class _Settings:
    local_dev = False


_settings = _Settings()


def set_local_dev(enabled: bool) -> None:
    """Enable or disable local development mode."""
    _settings.local_dev = bool(enabled)


def is_local_dev() -> bool:
    return _settings.local_dev