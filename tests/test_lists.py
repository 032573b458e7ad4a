"""Tests for list-item subpaths."""

import pytest

from quoth.adapters.markdown_parser import MarkdownMetadata
from quoth.core.errors import ListItemNotFound
from quoth.core.lists import list_children, resolve_list
from quoth.core.subpath import resolve_subpath

LIST_DOC = """# Some lists!
1. Item 1
  1. Subitem 1
    1. Tertiary 1
    2. Tertiary 2
  2. Subitem 2
    1. Tertiary 1
2. Item 2
  1. Subitem 1
    1. Tertiary 1

987. Type 1
54) Type 2
- Type 3
* Type 4
+ Type 5"""

META = MarkdownMetadata().parse(LIST_DOC)
ITEMS = META.list_items


def resolved(subpath, items=ITEMS):
    result = resolve_list(LIST_DOC, items, subpath)
    return result.start, result.end


def test_list_structure():
    """Nesting follows indentation."""
    assert len(ITEMS) == 14
    assert ITEMS[0].parent < 0
    assert ITEMS[1].parent == 1
    assert ITEMS[2].parent == 2
    assert ITEMS[3].parent == 2
    assert ITEMS[4].parent == 1
    assert ITEMS[6].parent < 0
    assert ITEMS[9].parent < 0
    assert list_children(ITEMS, ITEMS[0]) == [ITEMS[1], ITEMS[4]]


def test_top_level_items_cover_subtree():
    assert resolved("#-Item 1") == (ITEMS[0].position.start, ITEMS[5].position.end)
    assert resolved("#-Item 2") == (ITEMS[6].position.start, ITEMS[8].position.end)


def test_first_match_wins():
    assert resolved("#-Subitem 1") == (ITEMS[1].position.start, ITEMS[3].position.end)
    assert resolved("#-Subitem 2") == (ITEMS[4].position.start, ITEMS[5].position.end)
    assert resolved("#-Tertiary 1") == (ITEMS[2].position.start, ITEMS[2].position.end)
    assert resolved("#-Tertiary 2") == (ITEMS[3].position.start, ITEMS[3].position.end)


def test_multi_level_paths():
    assert resolved("#-Item 1#-Subitem 1#-Tertiary 1") == (ITEMS[2].position.start, ITEMS[2].position.end)
    assert resolved("#-Subitem 1#-Tertiary 1") == (ITEMS[2].position.start, ITEMS[2].position.end)
    assert resolved("#-Subitem 2#-Tertiary 1") == (ITEMS[5].position.start, ITEMS[5].position.end)
    assert resolved("#-Item 1#-Subitem 2#-Tertiary 1") == (ITEMS[5].position.start, ITEMS[5].position.end)
    assert resolved("#-Item 2#-Subitem 1") == (ITEMS[7].position.start, ITEMS[8].position.end)
    assert resolved("#-Item 2#-Subitem 1#-Tertiary 1") == (ITEMS[8].position.start, ITEMS[8].position.end)


@pytest.mark.parametrize("n", [1, 2, 3, 4, 5])
def test_bullet_types(n):
    item = ITEMS[8 + n]
    assert resolved(f"#-Type {n}") == (item.position.start, item.position.end)


def test_missing_item():
    with pytest.raises(ListItemNotFound):
        resolve_list(LIST_DOC, ITEMS, "#-Doesn't exist")
    with pytest.raises(ListItemNotFound):
        resolve_list(LIST_DOC, ITEMS, "#-Item 2#-Subitem 2")


def test_list_under_heading():
    """A heading path in front of the list path scopes the search."""
    doc = "# A\n- same\n  - child a\n# B\n- same\n  - child b\n"
    meta = MarkdownMetadata().parse(doc)
    span = resolve_subpath(doc, meta, "#B#-same").span(doc)
    assert doc[span.start : span.end] == "- same\n  - child b"
    span = resolve_subpath(doc, meta, "#-same").span(doc)
    assert doc[span.start : span.end] == "- same\n  - child a"


def test_dash_heading_falls_back():
    """Headings that start with a dash are still found."""
    doc = "# -dashed\ntext\n"
    meta = MarkdownMetadata().parse(doc)
    span = resolve_subpath(doc, meta, "#-dashed").span(doc)
    assert doc[span.start : span.end] == doc


def test_unresolvable_list_reports_list_error():
    with pytest.raises(ListItemNotFound):
        resolve_subpath(LIST_DOC, META, "#-Nothing here")
