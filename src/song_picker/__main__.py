# src/song_picker/__main__.py
from __future__ import annotations


def main() -> int:
    """
    Module entrypoint:
      - python -m song_picker            -> CLI help
      - python -m song_picker <command>  -> CLI command
    """
    from song_picker.cli import main as cli_main

    # Let the CLI parse sys.argv itself.
    return int(cli_main())


if __name__ == "__main__":
    raise SystemExit(main())
