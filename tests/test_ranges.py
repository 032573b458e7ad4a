"""Tests for range variants, the ranges grammar and range choice."""

import pytest

from quoth.core.errors import AnchorNotFound, OutOfBounds, QuothSyntaxError, ResolveError
from quoth.core.model import OffsetSpan, Position
from quoth.core.ranges import (
    AfterPosition,
    AfterString,
    PositionRange,
    StringRange,
    WholeString,
    choose_range,
    extract,
    parse_range,
    parse_ranges,
    serialize,
    serialize_ranges,
)

DOC = "hello\nworld"


def test_resolve_each_variant():
    """Test each variant against a two-line document."""
    assert StringRange("el", "or").resolve(DOC) == OffsetSpan(1, 9)
    assert PositionRange(Position(0, 1), Position(1, 1)).resolve(DOC) == OffsetSpan(1, 7)
    assert WholeString("hello").resolve(DOC) == OffsetSpan(0, 5)
    assert AfterPosition(Position(1, 0)).resolve(DOC) == OffsetSpan(6, 11)
    assert AfterString("hello").resolve(DOC) == OffsetSpan(5, 11)


def test_string_range_end_searched_after_start():
    """The tail anchor is looked up from the head anchor onwards."""
    doc = "end. start middle end."
    assert extract(StringRange("start", "end."), doc) == "start middle end."


def test_resolve_failures():
    with pytest.raises(AnchorNotFound):
        StringRange("zz", "or").resolve(DOC)
    with pytest.raises(AnchorNotFound):
        StringRange("wor", "hel").resolve(DOC)
    with pytest.raises(AnchorNotFound):
        AfterString("nope").resolve(DOC)
    with pytest.raises(OutOfBounds):
        PositionRange(Position(5, 0), Position(5, 1)).resolve(DOC)
    with pytest.raises(OutOfBounds):
        AfterPosition(Position(1, 10)).resolve(DOC)


def test_inverted_position_range():
    """A range ending before it starts fails instead of resolving to nothing."""
    with pytest.raises(OutOfBounds):
        PositionRange(Position(1, 0), Position(0, 2)).resolve(DOC)
    with pytest.raises(QuothSyntaxError) as exc:
        parse_ranges("3:0 to 1:0")
    assert exc.value.token == "1:0"
    assert parse_ranges("1:0 to 1:0") == [PositionRange(Position(1, 0), Position(1, 0))]


def test_resolve_errors_are_lookup_errors():
    """Resolution failures share a category the host can catch."""
    with pytest.raises(LookupError):
        WholeString("absent").resolve(DOC)
    try:
        WholeString("absent").resolve(DOC)
    except ResolveError as e:
        assert "try re-copying" in e.user_message


def test_serialize():
    assert serialize(StringRange("el", "or")) == '"el" to "or"'
    assert serialize(PositionRange(Position(0, 1), Position(1, 1))) == "0:1 to 1:1"
    assert serialize(WholeString("hello")) == '"hello"'
    assert serialize(AfterString("hello")) == 'after "hello"'
    assert serialize(AfterPosition(Position(3, 0))) == "after 3:0"
    assert serialize(WholeString('say "hi"\n')) == r'"say \"hi\"\n"'


def test_parse_ranges_list():
    ranges = parse_ranges('"Hello" to "world.", 5:2 to 7:0, "whole text", after "anchor", after 3:0')
    assert ranges == [
        StringRange("Hello", "world."),
        PositionRange(Position(5, 2), Position(7, 0)),
        WholeString("whole text"),
        AfterString("anchor"),
        AfterPosition(Position(3, 0)),
    ]
    assert serialize_ranges(ranges) == (
        '"Hello" to "world.", 5:2 to 7:0, "whole text", after "anchor", after 3:0'
    )


def test_round_trip_preserves_resolution():
    """Parsing a serialized range gives back an equal range."""
    doc = 'Quotes "inside" text,\nand a second line, too'
    for r in [
        StringRange('"inside"', "line"),
        PositionRange(Position(0, 2), Position(1, 5)),
        WholeString("a second"),
        AfterString(",\n"),
        AfterPosition(Position(1, 3)),
    ]:
        parsed = parse_range(serialize(r))
        assert parsed == r
        assert parsed.resolve(doc) == r.resolve(doc)


def test_parse_tolerates_whitespace():
    assert parse_ranges('  "a"   to   "b" ,after 1:2  ') == [
        StringRange("a", "b"),
        AfterPosition(Position(1, 2)),
    ]
    assert parse_ranges("") == []


@pytest.mark.parametrize(
    "text",
    [
        '"abc" to',
        '"abc" to 1:2',
        '"abc" 1:2',
        "1:2 to",
        '1:2 to "x"',
        "1:2",
        "after",
        "after to",
        "foo",
        '"a",',
        '"unterminated',
        '"" to "x"',
        'after ""',
        "1:2x to 3:4",
    ],
)
def test_parse_errors(text):
    """Malformed ranges lines raise a syntax error."""
    with pytest.raises(QuothSyntaxError):
        parse_ranges(text)


def test_parse_error_names_token():
    with pytest.raises(QuothSyntaxError) as exc:
        parse_ranges('"a" to "b", bogus')
    assert exc.value.token == "bogus"


def test_choose_unique_selection():
    """A selection occurring once is stored as itself."""
    selection = PositionRange(Position(0, 0), Position(0, 5))
    assert choose_range(DOC, "hello", selection) == WholeString("hello")


def test_choose_repeated_selection():
    """A repeated selection falls back to its position."""
    selection = PositionRange(Position(0, 2), Position(0, 3))
    chosen = choose_range(DOC, "l", selection)
    assert chosen == selection
    assert not isinstance(chosen, WholeString)


def test_choose_long_selection():
    doc = "The quick brown fox jumps over the lazy dog, then naps in the sun."
    selected = "quick brown fox jumps over the lazy dog, then naps"
    chosen = choose_range(doc, selected, PositionRange(Position(0, 4), Position(0, 54)))
    assert chosen == StringRange("quick brow", " then naps")
    assert extract(chosen, doc) == selected


def test_choose_whole_document():
    """Selecting everything needs no range."""
    assert choose_range(DOC, DOC, PositionRange(Position(0, 0), Position(1, 5))) is None
