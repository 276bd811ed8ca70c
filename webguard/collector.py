"""Handlers that collect browser violation reports.

Two formats are accepted: generic reports of the Reporting API, sent as
"application/reports+json", and deprecated CSP violation reports, sent as
"application/csp-report" (with or without the wrapping "csp-report" key).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Mapping

from webguard.core import NoContentResponse, Request, ResponseWriter, Result

_UINT_LIMIT = 2**64


@dataclass(frozen=True)
class CSPReport:
    """A CSP violation report."""

    blocked_url: str = ""
    disposition: str = ""
    document_url: str = ""
    effective_directive: str = ""
    original_policy: str = ""
    referrer: str = ""
    sample: str = ""
    status_code: int = 0
    violated_directive: str = ""
    source_file: str = ""
    line_number: int = 0
    column_number: int = 0


@dataclass(frozen=True)
class Report:
    """A generic Reporting API report.

    body is a CSPReport for reports of type "csp-violation" and a dict
    holding the decoded JSON object otherwise; JSON numbers in that dict
    are floats.
    """

    type: str = ""
    age: int = 0
    url: str = ""
    user_agent: str = ""
    body: Any = None


class _DecodeError(ValueError):
    """The request body does not have the expected shape."""


class _Pairs(list):
    """A decoded JSON object, kept as its ordered key/value pairs."""


_SKIP = object()
_MISSING = object()


def _reject_constant(name: str) -> Any:
    raise _DecodeError(f"invalid JSON constant {name}")


def _parse(data: bytes) -> Any:
    text = data.decode("utf-8", errors="replace")
    try:
        return json.loads(text, object_pairs_hook=_Pairs, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise _DecodeError(str(exc)) from exc


def _string(value: Any) -> Any:
    if value is None:
        return _SKIP
    if not isinstance(value, str):
        raise _DecodeError(f"expected a string, got {value!r}")
    return value


def _uint(value: Any) -> Any:
    if value is None:
        return _SKIP
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _UINT_LIMIT:
        raise _DecodeError(f"expected an unsigned integer, got {value!r}")
    return value


def _raw(value: Any) -> Any:
    return value


_Fields = Mapping[str, "tuple[str, Callable[[Any], Any]]"]


def _lookup(fields: _Fields, key: str) -> Any:
    spec = fields.get(key)
    if spec is not None:
        return spec
    folded = key.casefold()
    for name, candidate in fields.items():
        if name.casefold() == folded:
            return candidate
    return None


def _decode_object(value: Any, fields: _Fields, into: dict[str, Any]) -> None:
    """Decode a JSON object into the given attributes; null leaves them untouched."""
    if value is None:
        return
    if not isinstance(value, _Pairs):
        raise _DecodeError(f"expected an object, got {value!r}")
    for key, item in value:
        spec = _lookup(fields, key)
        if spec is None:
            continue
        attr, convert = spec
        converted = convert(item)
        if converted is not _SKIP:
            into[attr] = converted


def _to_plain(value: Any) -> Any:
    if isinstance(value, _Pairs):
        return {key: _to_plain(item) for key, item in value}
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    try:
        number = float(value)
    except OverflowError as exc:
        raise _DecodeError(f"number {value!r} out of range") from exc
    if math.isinf(number):
        raise _DecodeError(f"number {value!r} out of range")
    return number


_DEPRECATED_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "csp-report": ("csp_report", _raw),
    "blocked-uri": ("blocked_url", _string),
    "disposition": ("disposition", _string),
    "document-uri": ("document_url", _string),
    "effective-directive": ("effective_directive", _string),
    "original-policy": ("original_policy", _string),
    "referrer": ("referrer", _string),
    "script-sample": ("sample", _string),
    "status-code": ("status_code", _uint),
    "violated-directive": ("violated_directive", _string),
    "source-file": ("source_file", _string),
    "lineno": ("lineno", _uint),
    "line-number": ("line_number", _uint),
    "colno": ("colno", _uint),
    "column-number": ("column_number", _uint),
}

_REPORT_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "type": ("type", _string),
    "age": ("age", _uint),
    "url": ("url", _string),
    "userAgent": ("user_agent", _string),
    "body": ("body", _raw),
}

_CSP_VIOLATION_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "blockedURL": ("blocked_url", _string),
    "disposition": ("disposition", _string),
    "documentURL": ("document_url", _string),
    "effectiveDirective": ("effective_directive", _string),
    "originalPolicy": ("original_policy", _string),
    "referrer": ("referrer", _string),
    "sample": ("sample", _string),
    "statusCode": ("status_code", _uint),
    "sourceFile": ("source_file", _string),
    "lineNumber": ("line_number", _uint),
    "columnNumber": ("column_number", _uint),
}


def _parse_deprecated_csp_report(data: bytes) -> CSPReport:
    # CSP2 wraps the report in a "csp-report" key, CSP3 does not; accept both.
    fields: dict[str, Any] = {}
    _decode_object(_parse(data), _DEPRECATED_FIELDS, fields)
    if "csp_report" in fields:
        inner = fields.pop("csp_report")
        _decode_object(inner, _DEPRECATED_FIELDS, fields)
        fields.pop("csp_report", None)
    line = fields.pop("lineno", 0) or fields.pop("line_number", 0)
    column = fields.pop("colno", 0) or fields.pop("column_number", 0)
    fields.pop("line_number", None)
    fields.pop("column_number", None)
    return CSPReport(line_number=line, column_number=column, **fields)


def _csp_violation_body(body: Any) -> CSPReport:
    if body is _MISSING:
        raise _DecodeError("missing report body")
    fields: dict[str, Any] = {}
    _decode_object(body, _CSP_VIOLATION_FIELDS, fields)
    # CSP3 dropped violated-directive; it mirrors effective-directive for compatibility.
    return CSPReport(violated_directive=fields.get("effective_directive", ""), **fields)


def _generic_body(body: Any) -> dict[str, Any]:
    if body is _MISSING:
        raise _DecodeError("missing report body")
    if body is None:
        return {}
    if not isinstance(body, _Pairs):
        raise _DecodeError(f"expected an object, got {body!r}")
    return _to_plain(body)


_BODY_PARSERS: dict[str, Callable[[Any], Any]] = {
    "csp-violation": _csp_violation_body,
}


def _parse_report_list(data: bytes) -> list[dict[str, Any]]:
    value = _parse(data)
    if value is None:
        return []
    if not isinstance(value, list) or isinstance(value, _Pairs):
        raise _DecodeError("expected a list of reports")
    entries = []
    for item in value:
        fields: dict[str, Any] = {"body": _MISSING}
        _decode_object(item, _REPORT_FIELDS, fields)
        entries.append(fields)
    return entries


def _handle_deprecated_csp_report(
    csp_handler: Callable[[CSPReport], None], w: ResponseWriter, data: bytes
) -> Result:
    try:
        report = _parse_deprecated_csp_report(data)
    except _DecodeError:
        return w.write_error(HTTPStatus.BAD_REQUEST)
    csp_handler(report)
    return w.write(NoContentResponse())


def _handle_reports(
    report_handler: Callable[[Report], None], w: ResponseWriter, data: bytes
) -> Result:
    try:
        entries = _parse_report_list(data)
    except _DecodeError:
        return w.write_error(HTTPStatus.BAD_REQUEST)

    bad_report = False
    for entry in entries:
        report_type = entry.get("type", "")
        parse_body = _BODY_PARSERS.get(report_type, _generic_body)
        try:
            body = parse_body(entry["body"])
        except _DecodeError:
            bad_report = True
            continue
        report_handler(
            Report(
                type=report_type,
                age=entry.get("age", 0),
                url=entry.get("url", ""),
                user_agent=entry.get("user_agent", ""),
                body=body,
            )
        )

    if bad_report:
        return w.write_error(HTTPStatus.BAD_REQUEST)
    return w.write(NoContentResponse())


def handler(
    report_handler: Callable[[Report], None],
    csp_handler: Callable[[CSPReport], None],
) -> Callable[[ResponseWriter, Request], Result]:
    """Build a request handler passing received violation reports to the callbacks.

    Only POST requests are accepted; anything else gets 405 Method Not Allowed.
    """

    def serve(w: ResponseWriter, r: Request) -> Result:
        if r.method != "POST":
            return w.write_error(HTTPStatus.METHOD_NOT_ALLOWED)
        content_type = r.headers.get("Content-Type")
        if content_type == "application/csp-report":
            return _handle_deprecated_csp_report(csp_handler, w, r.body)
        if content_type == "application/reports+json":
            return _handle_reports(report_handler, w, r.body)
        return w.write_error(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)

    return serve