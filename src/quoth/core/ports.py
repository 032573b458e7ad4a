from typing import Any, Iterable, Protocol

from .model import BlockNode, FileMetadata, HeadingNode, ListItemNode


class FileStore(Protocol):
    """
    Raw document content, addressed by vault-relative POSIX path.
    """

    def read_file(self, path: str) -> str:
        pass

    def write_file(self, path: str, content: str) -> None:
        pass

    def list_files(self) -> Iterable[str]:
        pass


class MetadataCache(Protocol):
    """
    Structural snapshot of each document. Results are borrowed: callers
    re-fetch before each resolve and never mutate them.
    """

    def get_headings(self, path: str) -> list[HeadingNode]:
        pass

    def get_blocks(self, path: str) -> dict[str, BlockNode]:
        pass

    def get_list_items(self, path: str) -> list[ListItemNode]:
        pass

    def get_frontmatter(self, path: str) -> dict[str, Any]:
        pass

    def frontmatter_end(self, path: str) -> int:
        pass

    def resolve_link_target(self, link: str, from_path: str) -> str | None:
        pass

    def link_text(self, path: str, from_path: str) -> str:
        pass


class Host(FileStore, MetadataCache, Protocol):
    """Everything the capture, render and index flows need from the application."""


def file_metadata(cache: MetadataCache, path: str) -> FileMetadata:
    return FileMetadata(
        headings=cache.get_headings(path),
        blocks=cache.get_blocks(path),
        list_items=cache.get_list_items(path),
    )
