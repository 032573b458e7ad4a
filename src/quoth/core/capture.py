"""Capturing a reference from a live selection."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .embed import DEFAULT_DISPLAY, Display, Embed, ShowOptions, serialize
from .errors import CaptureError, QuothError
from .model import FileMetadata, Loc, Position
from .ranges import PositionRange, choose_range
from .strsearch import offset_to_position
from .subpath import resolve_subpath, scope_subpath

LOGGER = logging.getLogger(__name__)

BLOCKQUOTE_RUN_RE = re.compile(r"(?:(?:^|\n)>[^\n]+)+")


@dataclass
class CopyDefaults:
    """Options stamped onto newly captured references."""

    display: Display | None = None
    show: ShowOptions = field(default_factory=ShowOptions)


class SelectionTracker:
    """
    The user's current selection.

    Updated on every selection-change event and read once at capture time.
    """

    def __init__(self) -> None:
        self._anchor: Position | None = None
        self._head: Position | None = None

    def update(self, anchor: Position, head: Position) -> None:
        self._anchor = anchor
        self._head = head

    def clear(self) -> None:
        self._anchor = None
        self._head = None

    def is_selected(self) -> bool:
        return self._anchor is not None and self._anchor != self._head

    def selected(self) -> PositionRange:
        if not self.is_selected():
            raise CaptureError("Nothing is selected")
        start, end = self._anchor, self._head
        if (start.line, start.column) > (end.line, end.column):
            start, end = end, start
        return PositionRange(start, end)


def _relative(pos: Position, origin: Loc) -> Position:
    if pos.line == origin.line:
        return Position(0, pos.column - origin.col)
    return Position(pos.line - origin.line, pos.column)


def build_embed(
    doc: str,
    metadata: FileMetadata,
    selection: PositionRange,
    file_link: str,
    defaults: CopyDefaults | None = None,
) -> Embed:
    """
    Encode a selection of doc as an Embed.

    The selection is first scoped to the smallest uniquely addressable
    block or heading section holding it, then encoded relative to that
    scope so edits elsewhere in the document cannot invalidate it.
    """
    defaults = defaults or CopyDefaults()
    span = selection.resolve(doc)
    selected = doc[span.start : span.end]
    if not selected:
        raise CaptureError("Nothing is selected")

    text = doc
    local = selection
    subpath = scope_subpath(metadata, selection)
    if subpath:
        scope = resolve_subpath(doc, metadata, subpath)
        bounds = scope.span(doc)
        if bounds.start <= span.start and span.end <= bounds.end:
            text = doc[bounds.start : bounds.end]
            local = PositionRange(
                _relative(selection.start, scope.start), _relative(selection.end, scope.start)
            )
        else:
            LOGGER.debug("selection overruns %s, addressing whole file", subpath)
            subpath = ""

    range_ = choose_range(text, selected, local)
    return Embed(
        file=file_link,
        subpath=subpath,
        ranges=[range_] if range_ is not None else [],
        show=ShowOptions(defaults.show.title, defaults.show.author),
        display=defaults.display or DEFAULT_DISPLAY,
    )


def capture_reference(
    doc: str,
    metadata: FileMetadata,
    selection: PositionRange,
    file_link: str,
    defaults: CopyDefaults | None = None,
) -> str:
    return serialize(build_embed(doc, metadata, selection, file_link, defaults))


@dataclass
class CaptureResult:
    block: str | None = None
    error: QuothError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def try_capture(
    doc: str,
    metadata: FileMetadata,
    tracker: SelectionTracker,
    file_link: str,
    defaults: CopyDefaults | None = None,
) -> CaptureResult:
    """Capture the tracked selection, reporting failure instead of raising."""
    try:
        block = capture_reference(doc, metadata, tracker.selected(), file_link, defaults)
    except QuothError as e:
        return CaptureResult(error=e)
    return CaptureResult(block=block)


def _quote_pattern(quote: str) -> re.Pattern | None:
    text = re.sub(r"(^|\n)>", r"\1", quote).strip()
    words = text.split()
    if not words:
        return None
    return re.compile(r"\s*".join(re.escape(w) for w in words), re.MULTILINE)


def replace_blockquotes(
    doc: str,
    source_link: str,
    source_doc: str,
    metadata: FileMetadata,
    defaults: CopyDefaults | None = None,
) -> tuple[str, int]:
    """
    Replace pasted blockquotes with quoth references into source_doc.

    Only blockquotes whose text can be found in the source, ignoring
    whitespace differences, are replaced. Returns the new document and the
    number of replacements.
    """
    replaced = 0

    def replace(m: re.Match) -> str:
        nonlocal replaced
        quote = m.group(0)
        pattern = _quote_pattern(quote)
        found = pattern.search(source_doc) if pattern else None
        if found is None:
            return quote
        selection = PositionRange(
            offset_to_position(source_doc, found.start()),
            offset_to_position(source_doc, found.end()),
        )
        block = capture_reference(source_doc, metadata, selection, source_link, defaults)
        replaced += 1
        return ("\n" if quote.startswith("\n") else "") + block

    new_doc = BLOCKQUOTE_RUN_RE.sub(replace, doc)
    LOGGER.info("replaced %d blockquote(s) with references to %s", replaced, source_link)
    return new_doc, replaced
