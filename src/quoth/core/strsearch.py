"""Primitive text-offset utilities shared by ranges, subpaths and capture."""

from .model import Position

ANCHOR_MIN_LEN = 10


def line_start_offset(text: str, line: int) -> int | None:
    """
    Offset of the first character of a 0-based line.

    Returns None when the document has fewer lines.
    """
    idx = -1
    for _ in range(line):
        idx = text.find("\n", idx + 1)
        if idx < 0:
            return None
    return idx + 1


def offset_to_position(text: str, offset: int) -> Position:
    """Convert a character offset into a line/column position."""
    head = text[:offset]
    line = head.count("\n")
    return Position(line, len(head) - (head.rfind("\n") + 1))


def position_to_offset(text: str, pos: Position) -> int | None:
    start = line_start_offset(text, pos.line)
    if start is None:
        return None
    return start + pos.column


def is_unique(text: str, search: str) -> bool:
    """True iff search occurs in text exactly once."""
    idx = text.find(search)
    return idx >= 0 and text.find(search, idx + 1) == -1


def minimal_unique_anchors(text: str, search: str) -> tuple[str, ...] | None:
    """
    Shortest unique prefix and suffix of search within text.

    Both anchors start at ANCHOR_MIN_LEN characters and grow one character
    at a time until each is unique on its own. Returns (start, end), or
    (search,) when the two anchors together would cover the whole of
    search. Returns None when search itself is not unique, since no prefix
    of a repeated string can be unique.
    """
    if not search or not is_unique(text, search):
        return None

    start_len = min(len(search), ANCHOR_MIN_LEN)
    while not is_unique(text, search[:start_len]):
        start_len += 1

    end_len = min(len(search), ANCHOR_MIN_LEN)
    while not is_unique(text, search[-end_len:]):
        end_len += 1

    if start_len + end_len >= len(search):
        return (search,)
    return (search[:start_len], search[-end_len:])
