"""
Subpath resolution: narrowing a document to a heading section, a block or a
list-item subtree, and the reverse - the shortest subpath that still pins
down the container of a selection.

Subpath mini-language:

    #Heading#Nested heading     heading chain
    #^blockid                   block reference
    #-Item 1#-Subitem 2         list-item chain, optionally after headings
"""

import logging

from .errors import BlockNotFound, HeadingNotFound, QuothSyntaxError, ResolveError
from .lists import resolve_list
from .model import BlockNode, FileMetadata, HeadingNode, Loc, SubpathResult
from .ranges import PositionRange
from .strsearch import offset_to_position

LOGGER = logging.getLogger(__name__)


def _loc(doc: str, offset: int) -> Loc:
    pos = offset_to_position(doc, offset)
    return Loc(pos.line, pos.column, offset)


def get_containing_block(
    blocks: dict[str, BlockNode] | None, selection: PositionRange
) -> BlockNode | None:
    """First block whose lines cover the whole selection."""
    for block in (blocks or {}).values():
        if (
            block.position.start.line <= selection.start.line
            and block.position.end.line >= selection.end.line
        ):
            return block
    return None


def _index_of_last_heading(headings: list[HeadingNode], before_line: int) -> int:
    idx = -1
    for i, heading in enumerate(headings):
        if heading.position.end.line > before_line:
            break
        idx = i
    return idx


def get_parent_headings(
    headings: list[HeadingNode] | None, selection: PositionRange
) -> list[HeadingNode]:
    """
    Heading ancestors that contain the selection, outermost first.

    Walks back from the last heading above the selection's end. A heading
    is an ancestor when it is shallower than every heading seen so far in
    the walk and starts on or before the selection's first line; this
    yields the common ancestor when the selection spans sibling sections.
    """
    if not headings:
        return []
    parents: list[HeadingNode] = []
    level = float("inf")
    for i in range(_index_of_last_heading(headings, selection.end.line), -1, -1):
        if headings[i].level < level:
            level = headings[i].level
            if headings[i].position.start.line <= selection.start.line:
                parents.insert(0, headings[i])
    return parents


def _ancestor_chains(headings: list[HeadingNode]) -> list[list[HeadingNode]]:
    """For every heading, the chain of its ancestors ending in itself."""
    chains = []
    stack: list[HeadingNode] = []
    for heading in headings:
        while stack and stack[-1].level >= heading.level:
            stack.pop()
        stack.append(heading)
        chains.append(list(stack))
    return chains


def _chain_matches(chain: list[HeadingNode], path: list[str]) -> bool:
    # Last component names the heading itself; the rest must appear, in
    # order, among its ancestors. Intermediate levels may be skipped.
    if not path or chain[-1].heading != path[-1]:
        return False
    remaining = iter(h.heading for h in chain[:-1])
    return all(any(text == component for text in remaining) for component in path[:-1])


def match_heading_path(headings: list[HeadingNode], path: list[str]) -> list[int]:
    """Indexes of every heading the path could address, in document order."""
    return [
        i for i, chain in enumerate(_ancestor_chains(headings)) if _chain_matches(chain, path)
    ]


def heading_section(doc: str, headings: list[HeadingNode], idx: int) -> SubpathResult:
    """From the heading to just before the next heading of the same or higher level."""
    heading = headings[idx]
    for following in headings[idx + 1 :]:
        if following.level <= heading.level:
            end = max(following.position.start.offset - 1, heading.position.start.offset)
            return SubpathResult("heading", heading.position.start, _loc(doc, end))
    return SubpathResult("heading", heading.position.start, None)


def resolve_heading_path(doc: str, headings: list[HeadingNode], path: list[str]) -> SubpathResult:
    matches = match_heading_path(headings, path)
    if not matches:
        raise HeadingNotFound("#" + "#".join(path))
    return heading_section(doc, headings, matches[0])


def resolve_block(blocks: dict[str, BlockNode], block_id: str) -> SubpathResult:
    block = blocks.get(block_id)
    if block is None:
        raise BlockNotFound(block_id)
    return SubpathResult("block", block.position.start, block.position.end)


def _resolve_base(doc: str, metadata: FileMetadata, subpath: str) -> SubpathResult:
    if not subpath.startswith("#"):
        raise QuothSyntaxError(f"subpath must start with '#': {subpath!r}", token=subpath)
    components = subpath.split("#")[1:]
    for component in components:
        if component.startswith("^"):
            # block ids are unique per document; surrounding headings are informational
            return resolve_block(metadata.blocks, component[1:])
    return resolve_heading_path(doc, metadata.headings, components)


def resolve_subpath(doc: str, metadata: FileMetadata, subpath: str) -> SubpathResult:
    """
    Resolve a subpath against a document and its metadata snapshot.

    A ``#-`` marks the start of a list-item chain, optionally scoped by the
    heading path in front of it. Headings may themselves start with a dash,
    so when no list item matches the whole subpath is retried as a heading
    or block path.
    """
    if not subpath:
        return SubpathResult("file", Loc(0, 0, 0), None)

    list_idx = subpath.find("#-")
    if list_idx < 0:
        return _resolve_base(doc, metadata, subpath)

    items = metadata.list_items
    if list_idx > 0:
        scope = _resolve_base(doc, metadata, subpath[:list_idx]).span(doc)
        items = [
            li
            for li in items
            if li.position.start.offset >= scope.start and li.position.end.offset <= scope.end
        ]
    try:
        return resolve_list(doc, items, subpath[list_idx:])
    except ResolveError as list_error:
        try:
            return _resolve_base(doc, metadata, subpath)
        except ResolveError:
            raise list_error from None


def _addressable(heading: HeadingNode) -> bool:
    return "#" not in heading.heading and not heading.heading.startswith(("^", "-"))


def is_unique_path(headings: list[HeadingNode], path: list[str]) -> bool:
    return len(match_heading_path(headings, path)) <= 1


def scope_subpath(metadata: FileMetadata, selection: PositionRange) -> str:
    """
    Shortest subpath whose container holds the whole selection.

    A containing block wins outright. Otherwise the shortest trailing part
    of the heading ancestor chain that addresses a single heading is used.
    An empty string means the selection is best addressed against the whole
    document.
    """
    block = get_containing_block(metadata.blocks, selection)
    if block is not None:
        return "#^" + block.id

    chain = get_parent_headings(metadata.headings, selection)
    for length in range(1, len(chain) + 1):
        if not all(_addressable(h) for h in chain[-length:]):
            continue
        path = [h.heading for h in chain[-length:]]
        if is_unique_path(metadata.headings, path):
            return "#" + "#".join(path)
    LOGGER.debug("no unique heading path for selection %s", selection)
    return ""
