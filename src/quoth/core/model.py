from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Position:
    line: int  # 0-based
    column: int  # offset within the line, in str code points

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class OffsetSpan:
    start: int  # half-open character offsets into a document string
    end: int


@dataclass(frozen=True)
class Loc:
    line: int
    col: int
    offset: int


@dataclass(frozen=True)
class Span:
    start: Loc
    end: Loc


@dataclass(frozen=True)
class HeadingNode:
    heading: str
    level: int
    position: Span


@dataclass(frozen=True)
class BlockNode:
    id: str  # "riemann" for "^riemann"
    position: Span


@dataclass(frozen=True)
class ListItemNode:
    parent: int  # line of the parent item; negative for root items
    position: Span


@dataclass
class FileMetadata:
    """Borrowed snapshot of a document's structure, as a host cache supplies it."""

    headings: list[HeadingNode] = field(default_factory=list)
    blocks: dict[str, BlockNode] = field(default_factory=dict)
    list_items: list[ListItemNode] = field(default_factory=list)


@dataclass(frozen=True)
class SubpathResult:
    kind: str  # "heading" | "block" | "list-item"
    start: Loc
    end: Loc | None = None  # None runs to the end of the document

    def span(self, doc: str) -> OffsetSpan:
        end = self.end.offset if self.end is not None else len(doc)
        return OffsetSpan(self.start.offset, end)
