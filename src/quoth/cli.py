"""CLI for quoth - robust references to spans of markdown documents."""

import argparse
import json
import logging
import platform
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .core.capture import CopyDefaults, build_embed, replace_blockquotes
from .core.embed import DISPLAYS, SHOW_OPTIONS, ShowOptions, quoth_blocks, serialize
from .core.errors import QuothError
from .core.model import Position
from .core.ports import file_metadata
from .core.quote import render_block
from .core.ranges import PositionRange
from .core.subpath import scope_subpath
from .runtime import build_runtime


def position_arg(text: str) -> Position:
    """argparse type for ``LINE:COL``."""
    line, sep, col = text.partition(":")
    if not sep or not line.isdigit() or not col.isdigit():
        raise argparse.ArgumentTypeError(f"expected LINE:COL, got {text!r}")
    return Position(int(line), int(col))


def show_arg(text: str) -> ShowOptions:
    show = ShowOptions()
    for option in filter(None, (o.strip() for o in text.split(","))):
        if option not in SHOW_OPTIONS:
            raise argparse.ArgumentTypeError(f"unknown show option {option!r}")
        setattr(show, option, True)
    return show


def vault_path(rt: Any, file: str) -> str:
    """Vault path for a file given relative to cwd or to the vault root."""
    path = Path(file)
    if path.exists():
        try:
            return rt.vault.relative(path)
        except ValueError:
            raise QuothError(f"{file} is outside of the vault {rt.vault.root}") from None
    if rt.vault.exists(file):
        return file
    raise QuothError(f"File not found: {file}")


def _selection(args: argparse.Namespace) -> PositionRange:
    return PositionRange(args.start, args.end)


def cmd_capture(args: argparse.Namespace, rt: Any) -> int:
    """Print a quoth block for a selection."""
    path = vault_path(rt, args.file)
    defaults = rt.defaults
    if args.display or args.show:
        defaults = CopyDefaults(
            display=args.display or defaults.display,
            show=args.show or defaults.show,
        )
    embed = build_embed(
        rt.vault.read_file(path),
        file_metadata(rt.vault, path),
        _selection(args),
        rt.vault.link_text(path, path),
        defaults,
    )
    print(serialize(embed))
    return 0


def cmd_scope(args: argparse.Namespace, rt: Any) -> int:
    """Print the shortest unique subpath holding a selection."""
    path = vault_path(rt, args.file)
    print(scope_subpath(file_metadata(rt.vault, path), _selection(args)))
    return 0


def cmd_resolve(args: argparse.Namespace, rt: Any) -> int:
    """Render the quoth blocks of a referencing file."""
    path = vault_path(rt, args.file)
    doc = rt.vault.read_file(path)
    blocks = quoth_blocks(doc)
    if args.block is not None:
        if not 0 <= args.block < len(blocks):
            print(f"Error: {path} has {len(blocks)} quoth block(s)", file=sys.stderr)
            return 1
        blocks = [blocks[args.block]]

    status = 0
    for i, block in enumerate(blocks):
        result = render_block(block.text(doc), path, rt.vault)
        if not result.ok:
            status = 1
        if len(blocks) > 1 and not args.quiet:
            print(f"<!-- block {i} -->")
        print(result.text())
    return status


def cmd_reindex(args: argparse.Namespace, rt: Any) -> int:
    """Rebuild the reference index."""
    if not args.quiet:
        print(f"Reindexing {rt.vault.root}...")
    entries = rt.index.rebuild()
    if not args.quiet:
        print(f"References: {len(entries)}")
        print(f"Referencing files: {len({e.ref_file for e in entries})}")
    return 0


def cmd_backrefs(args: argparse.Namespace, rt: Any) -> int:
    """Show the quoted regions of a file and who quotes them."""
    path = vault_path(rt, args.file)
    spans = rt.index.quoted_spans(path)

    if args.json:
        output = [
            {
                "start": {"line": s.start.line, "col": s.start.col, "offset": s.start.offset},
                "end": {"line": s.end.line, "col": s.end.col, "offset": s.end.offset},
                "ref_files": s.ref_files,
            }
            for s in spans
        ]
        print(json.dumps(output, indent=2))
    else:
        for s in spans:
            print(f"{s.start.line}:{s.start.col}-{s.end.line}:{s.end.col}\t{', '.join(s.ref_files)}")
    return 0


def cmd_replace_quotes(args: argparse.Namespace, rt: Any) -> int:
    """Turn pasted blockquotes into quoth references."""
    ref_path = vault_path(rt, args.ref_file)
    source_path = vault_path(rt, args.source_file)
    new_doc, count = replace_blockquotes(
        rt.vault.read_file(ref_path),
        rt.vault.link_text(source_path, ref_path),
        rt.vault.read_file(source_path),
        file_metadata(rt.vault, source_path),
        rt.defaults,
    )
    if args.dry_run:
        print(new_doc)
        return 0
    if count:
        rt.vault.write_file(ref_path, new_doc)
        rt.index.on_modify(ref_path, new_doc)
    if not args.quiet:
        print(f"Replaced {count} blockquote(s) in {ref_path}")
    return 0


def cmd_watch(args: argparse.Namespace, rt: Any) -> int:
    """Watch vault for changes and keep the index current."""
    from .watch import watch_vault

    return watch_vault(
        vault_path=rt.vault.root,
        index=rt.index,
        debounce_ms=args.debounce_ms,
        quiet=args.quiet,
    )


class VersionAction(argparse.Action):
    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        print(f"quoth {__version__}")
        print(f"python {platform.python_version()}")
        print(f"platform {platform.platform()}")
        parser.exit()


def _selection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", help="Source document")
    p.add_argument("--from", dest="start", type=position_arg, required=True, help="Selection start as LINE:COL")
    p.add_argument("--to", dest="end", type=position_arg, required=True, help="Selection end as LINE:COL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quoth", description="Quoth CLI")
    parser.add_argument("--version", action=VersionAction, help="Print version information")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/quoth.toml, vault/quoth.toml)",
    )
    parser.add_argument(
        "--vault",
        type=Path,
        default=None,
        help="Path to vault directory (overrides config)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to SQLite index DB (overrides config)",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimize output")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (repeatable)")

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    # capture command
    parser_capture = subparsers.add_parser("capture", help="Print a quoth block for a selection")
    _selection_args(parser_capture)
    parser_capture.add_argument("--display", choices=DISPLAYS, default=None)
    parser_capture.add_argument("--show", type=show_arg, default=None, help="title, author or both")

    # scope command
    parser_scope = subparsers.add_parser("scope", help="Print the shortest unique subpath of a selection")
    _selection_args(parser_scope)

    # resolve command
    parser_resolve = subparsers.add_parser("resolve", help="Render the quoth blocks of a file")
    parser_resolve.add_argument("file", help="Referencing document")
    parser_resolve.add_argument("--block", type=int, default=None, help="Only the N-th block (0-based)")

    # reindex command
    subparsers.add_parser("reindex", help="Rebuild the reference index")

    # backrefs command
    parser_backrefs = subparsers.add_parser("backrefs", help="List quoted regions of a file")
    parser_backrefs.add_argument("file", help="Source document")
    parser_backrefs.add_argument("--json", action="store_true", help="Machine-readable output")

    # replace-quotes command
    parser_replace = subparsers.add_parser("replace-quotes", help="Turn pasted blockquotes into references")
    parser_replace.add_argument("ref_file", help="Document holding the blockquotes")
    parser_replace.add_argument("source_file", help="Document the quotes were taken from")
    parser_replace.add_argument("--dry-run", action="store_true", help="Print the result instead of writing it")

    # watch command
    parser_watch = subparsers.add_parser("watch", help="Watch vault for changes")
    parser_watch.add_argument(
        "--debounce-ms", type=int, default=150,
        help="Debounce window in milliseconds (default: 150)"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        rt = build_runtime(
            vault_path=args.vault,
            db_path=args.db,
            config_path=args.config,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    handlers = {
        "capture": cmd_capture,
        "scope": cmd_scope,
        "resolve": cmd_resolve,
        "reindex": cmd_reindex,
        "backrefs": cmd_backrefs,
        "replace-quotes": cmd_replace_quotes,
        "watch": cmd_watch,
    }
    handler = handlers.get(args.cmd)
    if handler is None:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        return 1

    try:
        return handler(args, rt)
    except QuothError as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
