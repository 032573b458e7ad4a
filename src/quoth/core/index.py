"""
Reference index: which documents quote which.

The index is a flat list of entries, one per quoth block. It is a cache
over the documents themselves and can be rebuilt from them at any time;
its main job is keeping ``path:`` lines valid when a quoted file is renamed.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .embed import parse, quoth_blocks, serialize
from .errors import QuothError, UnreadableFile
from .model import Loc, OffsetSpan
from .ports import Host, file_metadata
from .ranges import parse_ranges
from .strsearch import offset_to_position
from .subpath import resolve_subpath

LOGGER = logging.getLogger(__name__)

RENAME_ATTEMPTS = 10
RENAME_WAIT_MS = 50


@dataclass
class ReferenceIndexEntry:
    source_file: str
    sub_path: str
    ranges: list[str]
    ref_file: str
    ref_idx: int  # ordinal of the block within ref_file


@dataclass
class QuotedSpan:
    """A region of a source document quoted from elsewhere."""

    start: Loc
    end: Loc
    ref_files: list[str] = field(default_factory=list)


def quoth_block_offsets(text: str) -> list[OffsetSpan]:
    return [OffsetSpan(b.start, b.end) for b in quoth_blocks(text)]


def file_pattern(path: str) -> str:
    """
    Regex for the ways a wiki link can name path: any trailing part of its
    directory, and the extension optional.
    """
    *dirs, name = path.split("/")
    prefix = ""
    for d in dirs:
        prefix = f"(?:{prefix}{re.escape(d)}/)?"
    ext = re.search(r"(?:\.\w+)+$", name)
    if ext:
        stem = re.escape(name[: ext.start()]) + f"(?:{re.escape(ext.group())})?"
    else:
        stem = re.escape(name)
    return prefix + stem


def any_stale_links(old_path: str, text: str) -> bool:
    """True if a plain wiki link outside quoth blocks still names old_path."""
    outside = []
    pos = 0
    for block in quoth_blocks(text):
        outside.append(text[pos : block.start])
        pos = block.end
    outside.append(text[pos:])
    link = re.compile(r"\[\[" + file_pattern(old_path) + r"(?:\|[^\]|]+)?\]\]")
    return any(link.search(part) for part in outside)


class ReferenceIndex:
    """
    Bookkeeping of quoth blocks across a vault.

    ``save`` is called with the full entry list after every change that
    alters it; persisting is up to the caller.
    """

    def __init__(
        self,
        host: Host,
        entries: Iterable[ReferenceIndexEntry] = (),
        save: Callable[[list[ReferenceIndexEntry]], None] | None = None,
        attempts: int = RENAME_ATTEMPTS,
        wait_ms: int = RENAME_WAIT_MS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.host = host
        self.entries = list(entries)
        self._save = save
        self.attempts = attempts
        self.wait_ms = wait_ms
        self._sleep = sleep

    def save(self) -> None:
        if self._save is not None:
            self._save(list(self.entries))

    def scan_file(self, path: str, content: str | None = None) -> list[ReferenceIndexEntry]:
        """Entries for every quoth block in path whose source file resolves."""
        if content is None:
            content = self.host.read_file(path)
        found = []
        for idx, block in enumerate(quoth_blocks(content)):
            try:
                embed = parse(block.text(content))
            except QuothError as e:
                LOGGER.debug("skipping block %d in %s: %s", idx, path, e)
                continue
            source = self.host.resolve_link_target(embed.file, path) if embed.file else None
            if source is None:
                LOGGER.debug("skipping block %d in %s: no file %r", idx, path, embed.file)
                continue
            found.append(
                ReferenceIndexEntry(
                    source_file=source,
                    sub_path=embed.subpath,
                    ranges=[str(r) for r in embed.ranges],
                    ref_file=path,
                    ref_idx=idx,
                )
            )
        return found

    def rebuild(self) -> list[ReferenceIndexEntry]:
        entries = []
        for path in self.host.list_files():
            if not path.endswith(".md"):
                continue
            try:
                entries.extend(self.scan_file(path))
            except UnreadableFile as e:
                LOGGER.warning("skipping %s: %s", path, e)
        self.entries = entries
        self.save()
        LOGGER.info("indexed %d reference(s)", len(entries))
        return entries

    def _contains(self, path: str) -> bool:
        return any(e.ref_file == path or e.source_file == path for e in self.entries)

    def on_modify(self, path: str, content: str | None = None) -> None:
        kept = [e for e in self.entries if e.ref_file != path]
        found = self.scan_file(path, content)
        if len(kept) != len(self.entries) or found:
            self.entries = kept + found
            self.save()

    def on_delete(self, path: str) -> None:
        if self._contains(path):
            self.entries = [e for e in self.entries if e.ref_file != path]
            self.save()

    def on_rename(self, old_path: str, new_path: str) -> int:
        """
        Follow a rename: update entries, then rewrite the ``path:`` line of
        every block quoting the file. Returns the number of files rewritten.
        """
        if not self._contains(old_path):
            return 0
        for e in self.entries:
            if e.source_file == old_path:
                e.source_file = new_path
            if e.ref_file == old_path:
                e.ref_file = new_path
        self.save()

        by_file: dict[str, list[ReferenceIndexEntry]] = {}
        for e in self.entries:
            if e.source_file == new_path:
                by_file.setdefault(e.ref_file, []).append(e)
        for ref_path, entries in by_file.items():
            self._rewrite(ref_path, entries, new_path, old_path)
        return len(by_file)

    def _safe_read(self, path: str, old_path: str) -> str:
        # Wait, within bounds, for in-flight link updates to land first
        text = self.host.read_file(path)
        for i in range(self.attempts):
            if not any_stale_links(old_path, text):
                break
            self._sleep(self.wait_ms * (i + 1) / 1000)
            text = self.host.read_file(path)
        return text

    def _rewrite(
        self, ref_path: str, entries: list[ReferenceIndexEntry], new_path: str, old_path: str
    ) -> None:
        text = self._safe_read(ref_path, old_path)
        blocks = quoth_blocks(text)
        link = self.host.link_text(new_path, ref_path)
        # last block first so earlier offsets stay valid
        for entry in sorted(entries, key=lambda e: e.ref_idx, reverse=True):
            if entry.ref_idx >= len(blocks):
                LOGGER.debug("%s has no block %d", ref_path, entry.ref_idx)
                continue
            block = blocks[entry.ref_idx]
            try:
                embed = parse(block.text(text))
            except QuothError as e:
                LOGGER.debug("not rewriting block %d in %s: %s", entry.ref_idx, ref_path, e)
                continue
            embed.file = link
            text = text[: block.start] + serialize(embed, block.fence) + text[block.end :]
        self.host.write_file(ref_path, text)
        LOGGER.info("rewrote references in %s", ref_path)

    def refs_to(self, source_path: str) -> list[ReferenceIndexEntry]:
        return [e for e in self.entries if e.source_file == source_path]

    def refs_in(self, ref_path: str) -> list[ReferenceIndexEntry]:
        return sorted((e for e in self.entries if e.ref_file == ref_path), key=lambda e: e.ref_idx)

    def quoted_spans(self, source_path: str, content: str | None = None) -> list[QuotedSpan]:
        """
        Regions of source_path that are currently quoted, in document order.

        References that no longer resolve are left out.
        """
        refs = self.refs_to(source_path)
        if not refs:
            return []
        if content is None:
            content = self.host.read_file(source_path)
        metadata = file_metadata(self.host, source_path)

        spans: dict[tuple[int, int], QuotedSpan] = {}
        for ref in refs:
            try:
                scope = resolve_subpath(content, metadata, ref.sub_path).span(content)
                text = content[scope.start : scope.end]
                ranges = parse_ranges(", ".join(ref.ranges)) if ref.ranges else []
                found = [r.resolve(text) for r in ranges] or [OffsetSpan(0, len(text))]
            except QuothError as e:
                LOGGER.debug("unresolved reference from %s: %s", ref.ref_file, e)
                continue
            for span in found:
                key = (scope.start + span.start, scope.start + span.end)
                quoted = spans.get(key)
                if quoted is None:
                    quoted = spans[key] = QuotedSpan(_loc(content, key[0]), _loc(content, key[1]))
                if ref.ref_file not in quoted.ref_files:
                    quoted.ref_files.append(ref.ref_file)
        return [spans[k] for k in sorted(spans)]


def _loc(doc: str, offset: int) -> Loc:
    pos = offset_to_position(doc, offset)
    return Loc(pos.line, pos.column, offset)
