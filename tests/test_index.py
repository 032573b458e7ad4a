"""Tests for the reference index."""

import tempfile
from pathlib import Path

import pytest

from quoth.adapters.fs_vault import FsVault
from quoth.core.index import (
    ReferenceIndex,
    ReferenceIndexEntry,
    any_stale_links,
    file_pattern,
    quoth_block_offsets,
)
from quoth.core.model import Loc

SOURCE = "# Title\nThe moon waxes and wanes.\n"

REF = """Some text.
```quoth
path: [[Source]]
ranges: "moon waxes"
```
Middle.
~~~~quoth
path: [[Source#Title]]
~~~~
```quoth
path: [[Missing]]
```
```quoth
path: bad
```
"""

OTHER = '```quoth\npath: [[Source]]\nranges: "moon waxes"\n```\n'


@pytest.fixture
def vault():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "dir").mkdir()
        (root / "Source.md").write_text(SOURCE, encoding="utf-8")
        (root / "dir" / "Ref.md").write_text(REF, encoding="utf-8")
        (root / "Other.md").write_text(OTHER, encoding="utf-8")
        yield FsVault(root)


class Saves:
    def __init__(self):
        self.calls = []

    def __call__(self, entries):
        self.calls.append(entries)


def test_quoth_block_offsets():
    offsets = quoth_block_offsets(REF)
    assert len(offsets) == 4
    assert REF[offsets[1].start : offsets[1].end] == "~~~~quoth\npath: [[Source#Title]]\n~~~~"


def test_scan_file_skips_bad_blocks(vault):
    """Unresolvable and malformed blocks are left out."""
    index = ReferenceIndex(vault)
    entries = index.scan_file("dir/Ref.md")
    assert entries == [
        ReferenceIndexEntry("Source.md", "", ['"moon waxes"'], "dir/Ref.md", 0),
        ReferenceIndexEntry("Source.md", "#Title", [], "dir/Ref.md", 1),
    ]


def test_rebuild_saves(vault):
    save = Saves()
    index = ReferenceIndex(vault, save=save)
    entries = index.rebuild()
    assert len(entries) == 3
    assert save.calls == [entries]
    assert [e.ref_file for e in index.refs_to("Source.md")] == ["Other.md", "dir/Ref.md", "dir/Ref.md"]
    assert [e.ref_idx for e in index.refs_in("dir/Ref.md")] == [0, 1]


def test_rebuild_skips_unreadable_files(vault):
    (vault.root / "Binary.md").write_bytes(b"\xff\xfe\x00broken")
    index = ReferenceIndex(vault)
    assert len(index.rebuild()) == 3
    assert index.refs_in("Binary.md") == []


def test_on_modify_rescans(vault):
    save = Saves()
    index = ReferenceIndex(vault, save=save)
    index.rebuild()

    vault.write_file("Other.md", "no more quotes")
    index.on_modify("Other.md")
    assert index.refs_in("Other.md") == []
    assert len(save.calls) == 2

    # nothing indexed before or after: no save
    index.on_modify("Source.md")
    assert len(save.calls) == 2

    index.on_modify("Other.md", OTHER)
    assert len(index.refs_in("Other.md")) == 1


def test_on_delete(vault):
    save = Saves()
    index = ReferenceIndex(vault, save=save)
    index.rebuild()

    index.on_delete("dir/Ref.md")
    assert index.refs_in("dir/Ref.md") == []
    assert len(save.calls) == 2

    index.on_delete("Unrelated.md")
    assert len(save.calls) == 2


def test_on_rename_rewrites_references(vault):
    """Renaming a source rewrites the path line of every block quoting it."""
    index = ReferenceIndex(vault, sleep=lambda s: None)
    index.rebuild()

    (vault.root / "moved").mkdir()
    (vault.root / "Source.md").rename(vault.root / "moved" / "Renamed.md")
    assert index.on_rename("Source.md", "moved/Renamed.md") == 2

    ref = vault.read_file("dir/Ref.md")
    assert '```quoth\npath: [[Renamed]]\nranges: "moon waxes"\n```' in ref
    assert "~~~~quoth\npath: [[Renamed#Title]]\n~~~~" in ref
    assert "path: [[Missing]]" in ref
    assert "path: bad" in ref
    assert ref.startswith("Some text.\n")
    assert "path: [[Renamed]]" in vault.read_file("Other.md")
    assert {e.source_file for e in index.entries} == {"moved/Renamed.md"}


def test_on_rename_of_unindexed_file(vault):
    index = ReferenceIndex(vault)
    index.rebuild()
    assert index.on_rename("Nothing.md", "Else.md") == 0


def test_on_rename_of_referencing_file(vault):
    index = ReferenceIndex(vault)
    index.rebuild()
    (vault.root / "Other.md").rename(vault.root / "Another.md")
    index.on_rename("Other.md", "Another.md")
    assert len(index.refs_in("Another.md")) == 1
    assert index.refs_in("Other.md") == []


def test_on_rename_waits_for_stale_links(vault):
    """The rewrite waits while plain links to the old path remain."""
    vault.write_file("Other.md", "See [[Source]].\n" + OTHER)
    waits = []

    def sleep(seconds):
        waits.append(seconds)
        if len(waits) == 2:
            vault.write_file("Other.md", "See [[Renamed]].\n" + OTHER)

    index = ReferenceIndex(vault, sleep=sleep)
    index.rebuild()
    (vault.root / "Source.md").rename(vault.root / "Renamed.md")
    index.on_rename("Source.md", "Renamed.md")

    assert waits == [0.05, 0.1]
    assert vault.read_file("Other.md").startswith("See [[Renamed]].\n```quoth\npath: [[Renamed]]")


def test_on_rename_gives_up_waiting(vault):
    vault.write_file("Other.md", "See [[Source]].\n" + OTHER)
    waits = []
    index = ReferenceIndex(vault, attempts=3, wait_ms=10, sleep=waits.append)
    index.rebuild()
    (vault.root / "Source.md").rename(vault.root / "Renamed.md")
    index.on_rename("Source.md", "Renamed.md")
    assert waits == [0.01, 0.02, 0.03]
    assert "path: [[Renamed]]" in vault.read_file("Other.md")


def test_file_pattern():
    import re

    pattern = re.compile(file_pattern("a/b/Note.md"))
    for text in ["Note", "Note.md", "b/Note", "a/b/Note.md"]:
        assert pattern.fullmatch(text)
    for text in ["c/Note", "Notes", "a/Note"]:
        assert not pattern.fullmatch(text)


def test_any_stale_links():
    assert any_stale_links("Source.md", "See [[Source]]")
    assert any_stale_links("Source.md", "See [[Source.md|the source]]")
    assert not any_stale_links("Source.md", "```quoth\npath: [[Source]]\n```")
    assert not any_stale_links("Source.md", "See [[Sources]]")


def test_quoted_spans(vault):
    """Quoted regions are merged across referencing files."""
    index = ReferenceIndex(vault)
    index.rebuild()
    spans = index.quoted_spans("Source.md")
    assert len(spans) == 2
    assert spans[0].start == Loc(0, 0, 0)
    assert spans[0].end == Loc(2, 0, 34)
    assert spans[0].ref_files == ["dir/Ref.md"]
    assert spans[1].start == Loc(1, 4, 12)
    assert spans[1].end == Loc(1, 14, 22)
    assert spans[1].ref_files == ["Other.md", "dir/Ref.md"]


def test_quoted_spans_skip_stale_references(vault):
    index = ReferenceIndex(vault)
    index.rebuild()
    vault.write_file("Source.md", "Rewritten entirely.\n")
    assert index.quoted_spans("Source.md") == []
    assert index.quoted_spans("Nobody.md") == []
