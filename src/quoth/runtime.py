"""Runtime wiring helper for CLI applications."""

from dataclasses import dataclass
from pathlib import Path

from .adapters.fs_vault import FsVault
from .adapters.markdown_parser import MarkdownMetadata
from .adapters.sqlite_store import SQLiteReferenceStore
from .adapters.yaml_codec import YamlFrontmatter
from .config import QuothConfig, load_config
from .core.capture import CopyDefaults
from .core.index import ReferenceIndex


@dataclass
class Runtime:
    """Container for all wired components."""
    vault: FsVault
    index: ReferenceIndex
    store: SQLiteReferenceStore
    config: QuothConfig

    @property
    def defaults(self) -> CopyDefaults:
        return self.config.copy.defaults()


def build_runtime(
    vault_path: Path | None = None,
    db_path: Path | None = None,
    config_path: Path | None = None,
) -> Runtime:
    """Build and wire all components for a vault."""
    config = load_config(config_path=config_path, vault_path=vault_path)

    # Use config values if CLI args not provided
    if vault_path is None:
        vault_path = config.vault.root
    if db_path is None:
        db_path = config.vault.db

    vault = FsVault(vault_path, MarkdownMetadata(), YamlFrontmatter())
    store = SQLiteReferenceStore(db_path)
    index = ReferenceIndex(
        vault,
        entries=store.load(),
        save=store.save,
        attempts=config.index.rename_attempts,
        wait_ms=config.index.rename_wait_ms,
    )

    return Runtime(vault=vault, index=index, store=store, config=config)
