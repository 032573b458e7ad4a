"""List-item subpaths: ``#-Item 1#-Subitem 2``."""

import re

from .errors import ListItemNotFound
from .model import ListItemNode, Loc, SubpathResult

LIST_MARKER = r"(?:\d+[.)]|[+*-])\s+"


def list_item_text(doc: str, item: ListItemNode) -> str:
    return doc[item.position.start.offset : item.position.end.offset]


def list_matches(doc: str, item: ListItemNode, text: str) -> bool:
    """True when the item reads as a marker followed by exactly text."""
    return re.fullmatch(LIST_MARKER + re.escape(text), list_item_text(doc, item)) is not None


def list_children(items: list[ListItemNode], parent: ListItemNode) -> list[ListItemNode]:
    return [li for li in items if li.parent == parent.position.start.line]


def _parent_of(items: list[ListItemNode], item: ListItemNode) -> ListItemNode | None:
    if item.parent < 0:
        return None
    for li in items:
        if li.position.start.line == item.parent:
            return li
    return None


def _has_ancestors(
    doc: str, items: list[ListItemNode], item: ListItemNode, parents: list[str]
) -> bool:
    # parents is innermost first; ancestors that do not match are skipped over
    if not parents:
        return True
    ancestor = _parent_of(items, item)
    while ancestor is not None:
        if list_matches(doc, ancestor, parents[0]):
            return _has_ancestors(doc, items, ancestor, parents[1:])
        ancestor = _parent_of(items, ancestor)
    return False


def subtree_end(items: list[ListItemNode], item: ListItemNode) -> Loc:
    """Loc of the furthest end among item and all of its descendants."""
    end = item.position.end
    pending = list_children(items, item)
    while pending:
        child = pending.pop()
        if child.position.end.offset > end.offset:
            end = child.position.end
        pending.extend(list_children(items, child))
    return end


def resolve_list(doc: str, items: list[ListItemNode], subpath: str) -> SubpathResult:
    """
    Resolve a list-item path to the item and its whole subtree.

    When several items match, the first in document order wins, even if a
    later sibling with the same text was the one originally quoted.
    """
    path = subpath.split("#-")[1:]
    if not path:
        raise ListItemNotFound(subpath)
    target, parents = path[-1], list(reversed(path[:-1]))
    for item in items:
        if list_matches(doc, item, target) and _has_ancestors(doc, items, item, parents):
            return SubpathResult(
                kind="list-item",
                start=item.position.start,
                end=subtree_end(items, item),
            )
    raise ListItemNotFound(subpath)
