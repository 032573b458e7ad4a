import logging
from pathlib import Path, PurePosixPath
from typing import Any, Iterable

from ..core.errors import FileNotFound, UnreadableFile
from ..core.model import BlockNode, FileMetadata, HeadingNode, ListItemNode
from .markdown_parser import MarkdownMetadata
from .yaml_codec import YamlFrontmatter

LOGGER = logging.getLogger(__name__)


class FsVault:
    """
    A directory of documents acting as the quoth host.

    Paths are POSIX paths relative to root. Metadata is parsed on demand
    and cached until the file changes on disk.
    """

    def __init__(self, root: Path, parser: MarkdownMetadata | None = None, fm: YamlFrontmatter | None = None):
        self.root = root
        self.parser = parser or MarkdownMetadata()
        self.fm = fm or YamlFrontmatter()
        self._cache: dict[str, tuple[int, FileMetadata]] = {}

    def _path(self, path: str) -> Path:
        return self.root / PurePosixPath(path)

    def exists(self, path: str) -> bool:
        return self._path(path).is_file()

    def read_file(self, path: str) -> str:
        try:
            return self._path(path).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise FileNotFound(path) from e
        except UnicodeDecodeError as e:
            raise UnreadableFile(path, "not UTF-8 text") from e
        except OSError as e:
            raise UnreadableFile(path, e.strerror or str(e)) from e

    def write_file(self, path: str, content: str) -> None:
        p = self._path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        self._cache.pop(path, None)

    def list_files(self) -> Iterable[str]:
        if not self.root.exists():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file() and not any(part.startswith(".") for part in p.relative_to(self.root).parts)
        )

    def relative(self, path: Path) -> str:
        """Vault path of a file given on the command line or by the watcher."""
        return path.resolve().relative_to(self.root.resolve()).as_posix()

    def metadata(self, path: str) -> FileMetadata:
        try:
            mtime = self._path(path).stat().st_mtime_ns
        except FileNotFoundError as e:
            raise FileNotFound(path) from e
        cached = self._cache.get(path)
        if cached is not None and cached[0] == mtime:
            return cached[1]
        text = self.read_file(path)
        meta = self.parser.parse(text, self.fm.body_offset(text))
        self._cache[path] = (mtime, meta)
        return meta

    def get_headings(self, path: str) -> list[HeadingNode]:
        return self.metadata(path).headings

    def get_blocks(self, path: str) -> dict[str, BlockNode]:
        return self.metadata(path).blocks

    def get_list_items(self, path: str) -> list[ListItemNode]:
        return self.metadata(path).list_items

    def get_frontmatter(self, path: str) -> dict[str, Any]:
        meta, _body = self.fm.decode(self.read_file(path))
        return meta

    def frontmatter_end(self, path: str) -> int:
        return self.fm.body_offset(self.read_file(path))

    def resolve_link_target(self, link: str, from_path: str) -> str | None:
        """
        File a wiki link points to, or None.

        Tries the link as a vault path, then with ``.md`` appended, then
        matches basenames, preferring the file closest to from_path.
        """
        link = link.strip().lstrip("/")
        if not link:
            return None
        for candidate in (link, link + ".md"):
            if self.exists(candidate):
                return candidate

        suffixes = ("/" + link, "/" + link + ".md")
        matches = [p for p in self.list_files() if p.endswith(suffixes)]
        if not matches:
            LOGGER.debug("unresolved link %r from %s", link, from_path)
            return None
        from_dir = PurePosixPath(from_path).parent.parts
        return max(matches, key=lambda p: (_shared_prefix(PurePosixPath(p).parent.parts, from_dir), -len(p)))

    def link_text(self, path: str, from_path: str) -> str:
        """Shortest link text that resolves to path."""
        target = path[:-3] if path.endswith(".md") else path
        name = PurePosixPath(target).name
        same_name = [p for p in self.list_files() if PurePosixPath(p).name == PurePosixPath(path).name]
        if len(same_name) <= 1:
            return name
        return target


def _shared_prefix(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n
