"""Centralized defaults for Song Picker.

All size limits, file filters and naming widths should be defined here
and referenced by the engine and services (single source of truth).
Values from ``config.json`` or the command line take precedence.
"""

from __future__ import annotations

from typing import Any, Dict, List

# ---------------------------------------------------------------------------
# ID3v1 layout
TAG_SIZE = 128
TAG_MARKER = b"TAG"

# ---------------------------------------------------------------------------
# Output folders
MAX_FOLDER_BYTES = 629145600  # 600 MB, a safe figure for older CD players
FOLDER_NAME_WIDTH = 2
FILE_INDEX_WIDTH = 3

# ---------------------------------------------------------------------------
# Run behaviour
FILE_EXTENSIONS: List[str] = [".mp3"]
ON_ERROR = "abort"
STRATEGY = "weighted"

ON_ERROR_CHOICES = ("abort", "skip")
STRATEGY_CHOICES = ("weighted", "random")


def defaults() -> Dict[str, Any]:
    """Return a fresh config dict populated with the defaults above."""
    return {
        "max_folder_bytes": MAX_FOLDER_BYTES,
        "extensions": list(FILE_EXTENSIONS),
        "on_error": ON_ERROR,
        "strategy": STRATEGY,
    }
