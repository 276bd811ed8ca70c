"""Pre-processing of HTML templates: inject attributes and nodes into matching tags."""

from __future__ import annotations

import html
import string
from dataclasses import dataclass, field
from typing import IO, Iterator, Mapping, Sequence, Tuple, Union

CSP_NONCES_DEFAULT_FUNC_NAME = "CSPNonce"
XSRF_TOKENS_DEFAULT_FUNC_NAME = "XSRFToken"

_WHITESPACE = " \t\n\r\f"
_ASCII_LETTERS = frozenset(string.ascii_letters)
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_RAW_TAGS = frozenset(
    {
        "iframe",
        "noembed",
        "noframes",
        "noscript",
        "plaintext",
        "script",
        "style",
        "textarea",
        "title",
        "xmp",
    }
)


@dataclass(frozen=True)
class Rule:
    """A directive telling transform how to rewrite matching tags.

    add_attributes are inserted verbatim right after the tag name, so they
    should start with a space. add_nodes are inserted right after the
    opening tag: a child for elements with a closing tag, a sibling for
    self-closing ones.
    """

    name: str
    on_tag: str
    with_attributes: Mapping[str, str] = field(default_factory=dict)
    add_attributes: Tuple[str, ...] = ()
    add_nodes: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.name

    def _matches(self, attributes: Mapping[str, str]) -> bool:
        return all(attributes.get(k, "") == v for k, v in self.with_attributes.items())


TransformConfig = Tuple[Rule, ...]


def csp_nonces(nonce_attr: str) -> TransformConfig:
    """Build rules adding the given nonce attribute to scripts, script preloads and styles."""
    attr = " " + nonce_attr
    return (
        Rule(name="Nonces for scripts", on_tag="script", add_attributes=(attr,)),
        Rule(
            name="Nonces for link as=script rel=preload",
            on_tag="link",
            with_attributes={"rel": "preload", "as": "script"},
            add_attributes=(attr,),
        ),
        Rule(name="Nonces for styles", on_tag="style", add_attributes=(attr,)),
    )


def xsrf_tokens(input_tag: str) -> TransformConfig:
    """Build a rule adding the given node as the first child of every form."""
    return (Rule(name="XSRFTokens on forms", on_tag="form", add_nodes=(input_tag,)),)


CSP_NONCES_DEFAULT = csp_nonces(f'nonce="{{{{{CSP_NONCES_DEFAULT_FUNC_NAME}}}}}"')
XSRF_TOKENS_DEFAULT = xsrf_tokens(
    f'<input type="hidden" name="xsrf-token" value="{{{{{XSRF_TOKENS_DEFAULT_FUNC_NAME}}}}}">'
)


@dataclass(frozen=True)
class _StartTag:
    raw: str
    name: str
    attributes: Mapping[str, str]


class _Incomplete(Exception):
    """The input ended inside a tag."""


def _normalize(value: str) -> str:
    return value.replace("\r\n", "\n").replace("\r", "\n")


class _TagReader:
    """Reads a tag starting at the first character of its name."""

    def __init__(self, text: str, pos: int) -> None:
        self._text = text
        self._pos = pos

    def _next(self) -> str:
        if self._pos >= len(self._text):
            raise _Incomplete
        c = self._text[self._pos]
        self._pos += 1
        return c

    def _skip_whitespace(self) -> None:
        while self._next() in _WHITESPACE:
            pass
        self._pos -= 1

    def read(self) -> tuple[int, str, dict[str, str]]:
        """Return the end of the tag, its raw name and its attributes."""
        name_start = self._pos
        while True:
            c = self._next()
            if c in _WHITESPACE or c in "/>":
                self._pos -= 1
                break
        name = self._text[name_start : self._pos]
        attributes: dict[str, str] = {}
        self._skip_whitespace()
        while self._next() != ">":
            self._pos -= 1
            key = self._read_key()
            value = self._read_value()
            if key:
                attributes[_normalize(key).translate(_ASCII_LOWER)] = html.unescape(_normalize(value))
            self._skip_whitespace()
        return self._pos, name, attributes

    def _read_key(self) -> str:
        start = self._pos
        while True:
            c = self._next()
            if c == "=" and self._pos == start + 1:
                continue
            if c == "=" or c in _WHITESPACE or c in "/>":
                self._pos -= 1
                return self._text[start : self._pos]

    def _read_value(self) -> str:
        self._skip_whitespace()
        c = self._next()
        if c == "/":
            return ""
        if c != "=":
            self._pos -= 1
            return ""
        self._skip_whitespace()
        quote = self._next()
        if quote == ">":
            self._pos -= 1
            return ""
        if quote in "'\"":
            start = self._pos
            end = self._text.find(quote, start)
            if end < 0:
                raise _Incomplete
            self._pos = end + 1
            return self._text[start:end]
        start = self._pos - 1
        while True:
            c = self._next()
            if c in _WHITESPACE or c == ">":
                self._pos -= 1
                return self._text[start : self._pos]


def _find_markup(text: str, pos: int) -> int:
    n = len(text)
    while True:
        i = text.find("<", pos)
        if i < 0 or i + 1 >= n:
            return -1
        c = text[i + 1]
        if c in _ASCII_LETTERS or c in "!?" or (c == "/" and i + 2 < n):
            return i
        pos = i + 1


def _close_angle(text: str, pos: int) -> int:
    i = text.find(">", pos)
    return len(text) if i < 0 else i + 1


def _comment_end(text: str, pos: int) -> int:
    if text.startswith(">", pos):
        return pos + 1
    if text.startswith("->", pos):
        return pos + 2
    ends = [i + len(m) for m in ("-->", "--!>") if (i := text.find(m, pos)) >= 0]
    return min(ends) if ends else len(text)


def _markup_end(text: str, start: int) -> int:
    """Return the end of a comment, declaration or end tag starting at start."""
    marker = text[start + 1]
    if marker == "/":
        c = text[start + 2]
        if c == ">":
            return start + 3
        if c in _ASCII_LETTERS:
            try:
                return _TagReader(text, start + 2).read()[0]
            except _Incomplete:
                return len(text)
        return _close_angle(text, start + 2)
    if marker == "!" and text.startswith("--", start + 2):
        return _comment_end(text, start + 4)
    return _close_angle(text, start + 2)


def _raw_text_end(text: str, pos: int, name: str) -> int:
    n = len(text)
    if name == "plaintext":
        return n
    while True:
        i = text.find("</", pos)
        if i < 0:
            return n
        after = i + 2 + len(name)
        if (
            text[i + 2 : after].translate(_ASCII_LOWER) == name
            and after < n
            and (text[after] in _WHITESPACE or text[after] in "/>")
        ):
            return i
        pos = i + 2


def _scan(text: str) -> Iterator[Union[str, _StartTag]]:
    """Split text into start tags and verbatim chunks that together make up the input."""
    pos = 0
    n = len(text)
    while pos < n:
        start = _find_markup(text, pos)
        if start < 0:
            yield text[pos:]
            return
        if start > pos:
            yield text[pos:start]
        if text[start + 1] not in _ASCII_LETTERS:
            pos = _markup_end(text, start)
            yield text[start:pos]
            continue
        try:
            end, name, attributes = _TagReader(text, start + 1).read()
        except _Incomplete:
            yield text[start:]
            return
        tag = _StartTag(text[start:end], name.translate(_ASCII_LOWER), attributes)
        yield tag
        pos = end
        if tag.name in _RAW_TAGS:
            raw_end = _raw_text_end(text, pos, tag.name)
            if raw_end > pos:
                yield text[pos:raw_end]
            pos = raw_end


def _read_source(src: Union[str, bytes, bytearray, IO]) -> str:
    if isinstance(src, str):
        return src
    if isinstance(src, (bytes, bytearray)):
        return bytes(src).decode("utf-8")
    read = getattr(src, "read", None)
    if read is None:
        raise TypeError(f"cannot read a template from {type(src).__name__}")
    data = read()
    return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data


def transform(src: Union[str, bytes, bytearray, IO], *args: Sequence[Rule]) -> str:
    """Rewrite the HTML in src according to the given rule configurations."""
    text = _read_source(src)
    rules: dict[str, list[Rule]] = {}
    for config in args:
        for rule in config:
            rules.setdefault(rule.on_tag, []).append(rule)

    out: list[str] = []
    for token in _scan(text):
        if isinstance(token, str):
            out.append(token)
            continue
        triggered = [rule for rule in rules.get(token.name, ()) if rule._matches(token.attributes)]
        split = len(token.name) + 1
        out.append(token.raw[:split])
        out.extend(attr for rule in triggered for attr in rule.add_attributes)
        out.append(token.raw[split:])
        out.extend(node for rule in triggered for node in rule.add_nodes)
    return "".join(out)