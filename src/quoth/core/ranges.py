"""
Range representations and their textual grammar.

Every variant resolves to an OffsetSpan against a concrete document or
raises a ResolveError; none of them store offsets. The serialized form is
the value of a ``ranges:`` setting line:

    "Hello" to "world.", 5:2 to 7:0, "whole text", after "anchor", after 3:0
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Union

from .errors import AnchorNotFound, OutOfBounds, QuothSyntaxError
from .model import OffsetSpan, Position
from .strsearch import minimal_unique_anchors, position_to_offset

LOGGER = logging.getLogger(__name__)


def _offset(doc: str, pos: Position) -> int:
    offset = position_to_offset(doc, pos)
    if offset is None or offset > len(doc):
        raise OutOfBounds(pos)
    return offset


def _find(doc: str, anchor: str, start: int = 0) -> int:
    idx = doc.find(anchor, start)
    if idx < 0:
        raise AnchorNotFound(anchor)
    return idx


def _string(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


@dataclass(frozen=True)
class PositionRange:
    """Line/column addressing. Cheap, but shifts with any edit above it."""

    start: Position
    end: Position

    def resolve(self, doc: str) -> OffsetSpan:
        start, end = _offset(doc, self.start), _offset(doc, self.end)
        if end < start:
            raise OutOfBounds(self.end)
        return OffsetSpan(start, end)

    def __str__(self) -> str:
        return f"{self.start} to {self.end}"


@dataclass(frozen=True)
class StringRange:
    """Two independently unique anchors: the head and the tail of the span."""

    start: str
    end: str

    def resolve(self, doc: str) -> OffsetSpan:
        start = _find(doc, self.start)
        end = _find(doc, self.end, start) + len(self.end)
        return OffsetSpan(start, end)

    def __str__(self) -> str:
        return f"{_string(self.start)} to {_string(self.end)}"


@dataclass(frozen=True)
class WholeString:
    """The entire quoted text, used verbatim as its own anchor."""

    text: str

    def resolve(self, doc: str) -> OffsetSpan:
        start = _find(doc, self.text)
        return OffsetSpan(start, start + len(self.text))

    def __str__(self) -> str:
        return _string(self.text)


@dataclass(frozen=True)
class AfterString:
    """Everything following the first occurrence of anchor."""

    anchor: str

    def resolve(self, doc: str) -> OffsetSpan:
        return OffsetSpan(_find(doc, self.anchor) + len(self.anchor), len(doc))

    def __str__(self) -> str:
        return f"after {_string(self.anchor)}"


@dataclass(frozen=True)
class AfterPosition:
    """Everything from pos to the end of the document."""

    pos: Position

    def resolve(self, doc: str) -> OffsetSpan:
        return OffsetSpan(_offset(doc, self.pos), len(doc))

    def __str__(self) -> str:
        return f"after {self.pos}"


Range = Union[PositionRange, StringRange, WholeString, AfterString, AfterPosition]


def resolve(range_: Range, doc: str) -> OffsetSpan:
    return range_.resolve(doc)


def extract(range_: Range, doc: str) -> str:
    span = range_.resolve(doc)
    return doc[span.start : span.end]


def serialize(range_: Range) -> str:
    return str(range_)


def serialize_ranges(ranges: list[Range]) -> str:
    return ", ".join(str(r) for r in ranges)


def choose_range(doc: str, selected: str, selection: PositionRange) -> Range | None:
    """
    Pick the most robust encoding of a selection.

    A selection that occurs once becomes a WholeString, or a StringRange
    when its minimal unique head and tail are shorter than the text. A
    repeated selection falls back to its line/column position. Selecting
    the whole document needs no range at all, so None is returned.
    """
    if doc == selected:
        return None
    anchors = minimal_unique_anchors(doc, selected)
    if anchors is None:
        LOGGER.debug("selection is not unique, using position %s", selection)
        return selection
    if len(anchors) == 1:
        return WholeString(anchors[0])
    return StringRange(anchors[0], anchors[1])


# Tokens of a ranges line. The trailing "bad" group swallows anything the
# grammar does not know so it can be reported instead of skipped.
TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<string>"(?:[^"\\]|\\.)*")
        |(?P<pos>\d+:\d+)(?![\w:])
        |(?P<word>to|after)\b
        |(?P<comma>,)
        |(?P<bad>"[^\n]*|[^\s,]+)
    )""",
    re.VERBOSE,
)


def tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = TOKEN_RE.match(text, pos)
        if m is None or m.end() == pos:
            break
        pos = m.end()
        kind = m.lastgroup
        value = m.group(kind)
        if kind == "bad":
            raise QuothSyntaxError(f"unexpected token {value!r}", token=value)
        tokens.append((kind, value))
    return tokens


def parse_ranges(text: str) -> list[Range]:
    """Parse ``range (',' range)*``."""
    tokens = tokenize(text)
    ranges: list[Range] = []
    while tokens:
        ranges.append(_parse_range(tokens))
        if tokens:
            kind, value = tokens.pop(0)
            if kind != "comma":
                raise QuothSyntaxError(f"expected ',' but found {value!r}", token=value)
            if not tokens:
                raise QuothSyntaxError("expected range after ','", token=value)
    return ranges


def parse_range(text: str) -> Range:
    ranges = parse_ranges(text)
    if len(ranges) != 1:
        raise QuothSyntaxError(f"expected exactly one range in {text!r}", token=text)
    return ranges[0]


def _parse_range(tokens: list[tuple[str, str]]) -> Range:
    kind, value = tokens[0]
    if kind == "word" and value == "after":
        tokens.pop(0)
        return _parse_after(tokens)
    if kind == "string":
        return _parse_string_range(tokens)
    if kind == "pos":
        return _parse_pos_range(tokens)
    raise QuothSyntaxError(f"unexpected token {value!r}", token=value)


def _parse_after(tokens: list[tuple[str, str]]) -> Range:
    if not tokens:
        raise QuothSyntaxError("expected string or position after 'after'", token="after")
    kind, value = tokens.pop(0)
    if kind == "string":
        return AfterString(_parse_string(value))
    if kind == "pos":
        return AfterPosition(_parse_pos(value))
    raise QuothSyntaxError(f"expected string or position but found {value!r}", token=value)


def _parse_string_range(tokens: list[tuple[str, str]]) -> Range:
    start = _parse_string(tokens.pop(0)[1])
    if not tokens or tokens[0][0] == "comma":
        return WholeString(start)
    _expect_to(tokens)
    if not tokens or tokens[0][0] != "string":
        found = tokens[0][1] if tokens else "end of line"
        raise QuothSyntaxError(f"expected string but found {found!r}", token=found)
    return StringRange(start, _parse_string(tokens.pop(0)[1]))


def _parse_pos_range(tokens: list[tuple[str, str]]) -> PositionRange:
    start = _parse_pos(tokens.pop(0)[1])
    _expect_to(tokens)
    if not tokens or tokens[0][0] != "pos":
        found = tokens[0][1] if tokens else "end of line"
        raise QuothSyntaxError(f"expected position but found {found!r}", token=found)
    token = tokens.pop(0)[1]
    end = _parse_pos(token)
    if (end.line, end.column) < (start.line, start.column):
        raise QuothSyntaxError(f"range ends at {end}, before its start {start}", token=token)
    return PositionRange(start, end)


def _expect_to(tokens: list[tuple[str, str]]) -> None:
    if not tokens or tokens[0] != ("word", "to"):
        found = tokens[0][1] if tokens else "end of line"
        raise QuothSyntaxError(f"expected 'to' but found {found!r}", token=found)
    tokens.pop(0)


def _parse_string(token: str) -> str:
    try:
        value = json.loads(token)
    except json.JSONDecodeError as e:
        raise QuothSyntaxError(f"invalid string {token}", token=token) from e
    if not value:
        raise QuothSyntaxError("anchors must not be empty", token=token)
    return value


def _parse_pos(token: str) -> Position:
    line, _, col = token.partition(":")
    if not (line.isdigit() and col.isdigit()):
        raise QuothSyntaxError(f"invalid position {token!r}", token=token)
    return Position(int(line), int(col))
