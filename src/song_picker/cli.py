"""Command-line interface for Song Picker.

Each subcommand delegates to :class:`song_picker.engine.SongPickerEngine`.
Run ``python -m song_picker --help`` for usage.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import tuning
from .config_service import ConfigService
from .engine import SongPickerEngine
from .tag_service import UnreadableFileError


def _parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="song-picker",
        description="Song Picker – interleave an MP3 collection by artist and album",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_options(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--portable",
            "-p",
            action="store_true",
            help="Force portable mode (ignored if portable.flag is present)",
        )
        subparser.add_argument(
            "--skip-unreadable",
            action="store_true",
            help="Skip files whose tag cannot be read instead of aborting",
        )
        subparser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Do not print log lines",
        )

    def add_order_options(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument("src", help="Directory containing the MP3 files")
        subparser.add_argument("dest", help="Directory to put the numbered folders in")
        subparser.add_argument("--seed", type=int, default=None, help="Random seed (default: time based)")
        subparser.add_argument(
            "--strategy",
            choices=tuning.STRATEGY_CHOICES,
            default=None,
            help="Ordering strategy (default: from config, else weighted)",
        )
        subparser.add_argument(
            "--max-folder-mb",
            type=float,
            default=None,
            help="Folder size budget in MiB (default: from config, else 600)",
        )
        add_options(subparser)

    sp = subparsers.add_parser("list", help="List artists, albums and titles found in SRC")
    sp.add_argument("src", help="Directory containing the MP3 files")
    add_options(sp)

    sp = subparsers.add_parser("analyze", help="Compute the play order and folder plan only")
    add_order_options(sp)
    sp = subparsers.add_parser("dry-run", help="As analyze, and write logs and a playlist under DEST/logs")
    add_order_options(sp)
    sp = subparsers.add_parser("copy", help="Copy the songs into numbered folders in DEST")
    add_order_options(sp)

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Settings given on the command line; ``None`` means 'not given'."""
    overrides: Dict[str, Any] = {
        "seed": getattr(args, "seed", None),
        "strategy": getattr(args, "strategy", None),
    }
    if getattr(args, "skip_unreadable", False):
        overrides["on_error"] = "skip"
    max_mb = getattr(args, "max_folder_mb", None)
    if max_mb is not None:
        # Converted before validation so sub-byte budgets are rejected too.
        overrides["max_folder_bytes"] = int(max_mb * 1024 * 1024)
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_arguments(argv)
    command = args.command
    src_path = Path(args.src).expanduser().resolve()
    dest_path = Path(args.dest).expanduser().resolve() if getattr(args, "dest", None) else None

    config_service = ConfigService(app_dir=dest_path or src_path, portable=bool(args.portable))
    try:
        config = config_service.load_config(overrides=_cli_overrides(args))
    except ValueError as exc:
        print(f"Error: {exc}")
        return 1

    engine = SongPickerEngine(source_dir=src_path, dest_dir=dest_path, config=config)
    try:
        report = engine.run(
            mode=command,
            log_to_console=not args.quiet,
        )
    except UnreadableFileError as exc:
        print(f"Error: {exc}")
        return 1
    except FileNotFoundError as exc:
        print(f"Error: {exc}")
        return 1

    if command != "list":
        print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
