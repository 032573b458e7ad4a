"""Configuration loader for quoth.toml."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .core.capture import CopyDefaults
from .core.embed import DISPLAYS, ShowOptions
from .core.index import RENAME_ATTEMPTS, RENAME_WAIT_MS

CONFIG_NAME = "quoth.toml"


@dataclass
class VaultConfig:
    """Vault-specific configuration."""
    root: Path
    db: Path


@dataclass
class CopyConfig:
    """Defaults stamped onto newly captured references."""
    display: str | None = None
    show_title: bool = False
    show_author: bool = False

    def defaults(self) -> CopyDefaults:
        return CopyDefaults(
            display=self.display,
            show=ShowOptions(title=self.show_title, author=self.show_author),
        )


@dataclass
class IndexConfig:
    """Reference index rename handling."""
    rename_attempts: int = RENAME_ATTEMPTS
    rename_wait_ms: int = RENAME_WAIT_MS


@dataclass
class QuothConfig:
    """Complete quoth configuration."""
    vault: VaultConfig
    copy: CopyConfig = field(default_factory=CopyConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    source: Path | None = None


def load_config(config_path: Path | None = None, vault_path: Path | None = None) -> QuothConfig:
    """
    Load configuration from quoth.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/quoth.toml
    3. vault_path/quoth.toml

    Args:
        config_path: Explicit path to config file
        vault_path: Vault root path for fallback search

    Returns:
        QuothConfig with resolved settings
    """
    toml_data: dict[str, Any] = {}
    source = None

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_NAME)
    if vault_path:
        search_paths.append(vault_path / CONFIG_NAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            source = path
            break

    vault_data = toml_data.get("vault", {})
    vault_root = Path(vault_data.get("root", vault_path or Path("./vault")))
    vault_db = Path(vault_data.get("db", vault_root / ".quoth" / "index.sqlite"))

    copy_data = toml_data.get("copy", {})
    display = copy_data.get("display")
    if display is not None and display not in DISPLAYS:
        raise ValueError(f"copy.display must be one of {', '.join(DISPLAYS)}, got {display!r}")

    index_data = toml_data.get("index", {})

    return QuothConfig(
        vault=VaultConfig(root=vault_root, db=vault_db),
        copy=CopyConfig(
            display=display,
            show_title=bool(copy_data.get("show_title", False)),
            show_author=bool(copy_data.get("show_author", False)),
        ),
        index=IndexConfig(
            rename_attempts=int(index_data.get("rename_attempts", RENAME_ATTEMPTS)),
            rename_wait_ms=int(index_data.get("rename_wait_ms", RENAME_WAIT_MS)),
        ),
        source=source,
    )
