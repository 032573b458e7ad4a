"""
The quoth reference block: parsing and canonical serialization.

    ```quoth
    path: [[My Note#Heading#^blockid]]
    ranges: "Hello" to "world.", after 5:2
    join: "; "
    show: title, author
    display: inline
    ```

Each setting is a ``key: value`` line. Unknown keys are ignored; a known
key with a malformed value raises QuothSyntaxError naming the setting.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Callable, Literal

from .errors import QuothSyntaxError
from .ranges import Range, parse_ranges, serialize_ranges

DEFAULT_JOIN = " ... "
DEFAULT_DISPLAY = "embedded"
DISPLAYS = ("embedded", "inline")
FENCE_TAG = "quoth"

Display = Literal["embedded", "inline"]

SETTING_RE = re.compile(r"^(\w+):[ \t]*(.+?)[ \t]*$", re.MULTILINE)
PATH_RE = re.compile(r"^\[\[([^#|\[\]^]+)((?:#[^#]+)*)\]\]$")
FILE_RE = re.compile(r"^\[\[(.+?)\]\]$")
HEADING_RE = re.compile(r"^(?:#[^#]+)+$")
BLOCK_RE = re.compile(r"^\^([\w-]+)$")
JOIN_RE = re.compile(r'^"(?:[^"\\]|\\.)*"$')
SHOW_RE = re.compile(r"^[a-z]+$")
SHOW_OPTIONS = ("title", "author")

OPEN_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})" + FENCE_TAG + r"[ \t]*$", re.MULTILINE)
CLOSE_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*$", re.MULTILINE)


@dataclass
class ShowOptions:
    title: bool = False
    author: bool = False

    def any(self) -> bool:
        return self.title or self.author


@dataclass
class Embed:
    file: str = ""
    subpath: str = ""
    ranges: list[Range] = field(default_factory=list)
    join: str = DEFAULT_JOIN
    show: ShowOptions = field(default_factory=ShowOptions)
    display: Display = DEFAULT_DISPLAY

    @property
    def path(self) -> str:
        return self.file + self.subpath


@dataclass
class _Settings:
    """Parse state; the legacy heading/block lines compose onto the path."""

    embed: Embed
    heading: str = ""
    block: str = ""


def _parse_path(text: str, state: _Settings) -> None:
    m = PATH_RE.match(text)
    if not m:
        raise QuothSyntaxError(text, token=text, setting="path")
    state.embed.file = m.group(1)
    state.embed.subpath = m.group(2)


def _parse_file(text: str, state: _Settings) -> None:
    m = FILE_RE.match(text)
    if not m:
        raise QuothSyntaxError(text, token=text, setting="file")
    state.embed.file = m.group(1)


def _parse_heading(text: str, state: _Settings) -> None:
    if not HEADING_RE.match(text):
        raise QuothSyntaxError(text, token=text, setting="heading")
    state.heading = text


def _parse_block(text: str, state: _Settings) -> None:
    m = BLOCK_RE.match(text)
    if not m:
        raise QuothSyntaxError(text, token=text, setting="block")
    state.block = "#^" + m.group(1)


def _parse_ranges(text: str, state: _Settings) -> None:
    try:
        state.embed.ranges = parse_ranges(text)
    except QuothSyntaxError as e:
        raise QuothSyntaxError(str(e), token=e.token, setting="ranges") from e


def _parse_join(text: str, state: _Settings) -> None:
    if not JOIN_RE.match(text):
        raise QuothSyntaxError(text, token=text, setting="join")
    try:
        state.embed.join = json.loads(text)
    except json.JSONDecodeError as e:
        raise QuothSyntaxError(text, token=text, setting="join") from e


def _parse_show(text: str, state: _Settings) -> None:
    show = ShowOptions()
    for option in text.split(","):
        option = option.strip()
        if not SHOW_RE.match(option) or option not in SHOW_OPTIONS:
            raise QuothSyntaxError(f"unknown show option {option!r}", token=option, setting="show")
        setattr(show, option, True)
    state.embed.show = show


def _parse_display(text: str, state: _Settings) -> None:
    if text not in DISPLAYS:
        raise QuothSyntaxError(text, token=text, setting="display")
    state.embed.display = text


LINE_PARSERS: dict[str, Callable[[str, _Settings], None]] = {
    "path": _parse_path,
    "file": _parse_file,
    "heading": _parse_heading,
    "block": _parse_block,
    "ranges": _parse_ranges,
    "join": _parse_join,
    "show": _parse_show,
    "display": _parse_display,
}


def parse(text: str) -> Embed:
    """Parse the settings of a quoth block; fence lines, if present, are ignored."""
    state = _Settings(Embed())
    for m in SETTING_RE.finditer(text):
        name, value = m.group(1), m.group(2)
        parser = LINE_PARSERS.get(name)
        if parser is not None:
            parser(value, state)
    state.embed.subpath += state.heading + state.block
    return state.embed


def serialize(embed: Embed, fence: str = "```") -> str:
    """Canonical fenced block; defaults are omitted."""
    lines = [fence + FENCE_TAG, f"path: [[{embed.file}{embed.subpath}]]"]
    if embed.ranges:
        lines.append(f"ranges: {serialize_ranges(embed.ranges)}")
    if embed.join != DEFAULT_JOIN:
        lines.append(f"join: {json.dumps(embed.join, ensure_ascii=False)}")
    if embed.display != DEFAULT_DISPLAY:
        lines.append(f"display: {embed.display}")
    if embed.show.any():
        show = [name for name in SHOW_OPTIONS if getattr(embed.show, name)]
        lines.append(f"show: {', '.join(show)}")
    lines.append(fence)
    return "\n".join(lines)


@dataclass(frozen=True)
class QuothBlock:
    start: int
    end: int
    fence: str

    def text(self, doc: str) -> str:
        return doc[self.start : self.end]


def quoth_blocks(doc: str) -> list[QuothBlock]:
    """Fenced quoth blocks in document order; unterminated blocks are skipped."""
    blocks = []
    pos = 0
    while True:
        opening = OPEN_FENCE_RE.search(doc, pos)
        if opening is None:
            break
        fence = opening.group(1)
        pos = opening.end()
        for closing in CLOSE_FENCE_RE.finditer(doc, pos):
            marker = closing.group(1)
            if marker[0] == fence[0] and len(marker) >= len(fence):
                blocks.append(QuothBlock(opening.start(), closing.end(), fence))
                pos = closing.end()
                break
        else:
            break
    return blocks
