"""Core engine for Song Picker.

The :class:`SongPickerEngine` scans a source directory for audio files,
reads their ID3v1 tags into a :class:`~song_picker.library.LibraryIndex`,
computes an interleaved play order, splits that order into size-bounded
numbered folders and (in ``copy`` mode) copies the files there.

Modes and what they may touch:

- ``list``: prints the sorted artist/album/title tree. No writes.
- ``analyze``: computes order and folder plan. No writes.
- ``dry-run``: as analyze, plus run log, ``playlist.csv`` and
  ``run_report.json`` under ``<dest>/logs/<run_id>/``.
- ``copy``: as dry-run, plus the actual file copies.

Unreadable files abort the whole run before anything is written unless
the config sets ``on_error`` to ``"skip"``, in which case they are
left out and listed under ``read_errors`` in the report.
"""

from __future__ import annotations

import csv
import datetime
import json
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypedDict

from . import tuning
from .config_service import resolve_settings
from .bucket_service import BucketService, PlannedCopy, copy_file
from .library import LibraryIndex, Song
from .shuffle_service import basic_random, distribute, make_rng
from .tag_service import UnreadableFileError, read_song

MODES = ("list", "analyze", "dry-run", "copy")


class OrderEntry(TypedDict, total=False):
    index: int
    folder: int
    artist: str
    album: str
    title: str
    source: str
    dest: str
    size_bytes: int
    action: str
    reason: str


class ReadError(TypedDict):
    file: str
    error: str


@dataclass
class SongPickerEngine:
    """Song Picker engine responsible for ordering and copying songs."""

    source_dir: Path
    dest_dir: Optional[Path] = None
    config: Dict[str, Any] = field(default_factory=dict)

    current_mode: str = field(init=False, default="analyze")

    def __post_init__(self) -> None:
        self.source_dir = Path(self.source_dir)
        if self.dest_dir is not None:
            self.dest_dir = Path(self.dest_dir)
        self.config = resolve_settings(self.config)

    # ------------------------------------------------------------------
    # Settings
    def _extensions(self) -> List[str]:
        return [str(ext).lower() for ext in self.config["extensions"]]

    def _on_error(self) -> str:
        return str(self.config["on_error"]).lower()

    def _logs_root_dir(self) -> Path:
        if self.dest_dir is None:
            raise ValueError("A destination directory is required for run logs")
        return self.dest_dir / "logs"

    # ------------------------------------------------------------------
    # Ingestion
    def scan(self) -> List[Path]:
        """Return matching files directly inside the source directory, sorted."""
        if not self.source_dir.is_dir():
            raise FileNotFoundError(f"Source directory not found: {self.source_dir}")
        extensions = set(self._extensions())
        return sorted(
            p for p in self.source_dir.iterdir() if p.is_file() and p.suffix.lower() in extensions
        )

    def load_library(self, paths: Sequence[Path]) -> Tuple[LibraryIndex, List[ReadError]]:
        """Read every path into a fresh library.

        With ``on_error="abort"`` the first :class:`UnreadableFileError`
        propagates; with ``"skip"`` it is recorded and the file left out.
        """
        skip = self._on_error() == "skip"
        library = LibraryIndex()
        errors: List[ReadError] = []
        for path in paths:
            try:
                song = read_song(path)
            except UnreadableFileError as exc:
                if not skip:
                    raise
                errors.append({"file": str(path), "error": exc.reason})
                continue
            library.add_song(song)
        return library, errors

    # ------------------------------------------------------------------
    # Ordering and planning
    def order(self, library: LibraryIndex, strategy: str, seed: int) -> List[Song]:
        rng = make_rng(seed)
        if strategy == "weighted":
            return distribute(library, rng)
        if strategy == "random":
            return basic_random(list(library.songs()), rng)
        raise ValueError(f"strategy must be one of {tuning.STRATEGY_CHOICES}, got {strategy!r}")

    def plan(self, songs: Sequence[Song]) -> List[PlannedCopy]:
        if self.dest_dir is None:
            raise ValueError("A destination directory is required to plan folders")
        bucket_service = BucketService(
            dest_dir=self.dest_dir,
            max_folder_bytes=int(self.config["max_folder_bytes"]),
        )
        return bucket_service.plan(songs)

    def _build_order_entry(self, item: PlannedCopy, action: str, reason: str = "") -> OrderEntry:
        entry: OrderEntry = {
            "index": item.index,
            "folder": item.folder,
            "artist": item.song.artist,
            "album": item.song.album,
            "title": item.song.title,
            "source": str(item.source),
            "dest": str(item.dest),
            "size_bytes": item.song.size_bytes,
            "action": action,
        }
        if reason:
            entry["reason"] = reason
        return entry

    # ------------------------------------------------------------------
    # Run
    def run(
        self,
        mode: str = "analyze",
        seed: Optional[int] = None,
        strategy: Optional[str] = None,
        log_callback: Optional[Callable[[str], None]] = None,
        log_to_console: bool = True,
    ) -> Dict[str, Any]:
        """Execute a run and return a report dict.

        Hard rules (tests):
        - list/analyze: MUST NOT write anything
        - dry-run: may write logs/reports, MUST NOT copy
        - copy: never overwrites an existing destination file
        """
        mode = (mode or "analyze").lower().strip()
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        self.current_mode = mode
        if strategy is None:
            strategy = self.config["strategy"]
        strategy = strategy.lower()
        if seed is None:
            seed = self.config.get("seed")
        if seed is None:
            seed = time.time_ns()

        write_logs = mode in {"dry-run", "copy"}
        do_transfer = mode == "copy"

        def _emit_log(msg: str) -> None:
            if log_to_console:
                print(msg)
            if log_callback is not None:
                try:
                    log_callback(msg)
                except Exception:
                    pass

        run_id = datetime.datetime.now().strftime("%Y%m%d_%H%M%S_") + uuid.uuid4().hex[:8]
        report: Dict[str, Any] = {
            "run_id": run_id,
            "mode": mode,
            "strategy": strategy,
            "seed": seed,
            "timestamp": datetime.datetime.now().isoformat(),
            "source": str(self.source_dir.resolve()),
            "dest": str(self.dest_dir.resolve()) if self.dest_dir is not None else None,
            "files_scanned": 0,
            "files_loaded": 0,
            "files_copied": 0,
            "skipped_existing": 0,
            "failed": 0,
            "folders": 0,
            "total_bytes": 0,
            "read_errors": [],
            "order": [],
        }

        # Read everything before touching the destination so an aborted
        # ingestion leaves no partial output behind.
        paths = self.scan()
        report["files_scanned"] = len(paths)
        library, read_errors = self.load_library(paths)
        report["files_loaded"] = library.song_count
        report["read_errors"] = read_errors
        report["total_bytes"] = sum(song.size_bytes for song in library.songs())

        if mode == "list":
            listing = library.format_listing()
            report["artists"] = len(library)
            report["listing"] = listing
            for line in listing.splitlines():
                _emit_log(line)
            return report

        songs = self.order(library, strategy, seed)
        planned = self.plan(songs)
        report["folders"] = planned[-1].folder if planned else 0

        log_dir: Optional[Path] = None
        log_handle = None
        if write_logs:
            log_dir = self._logs_root_dir() / run_id
            log_dir.mkdir(parents=True, exist_ok=True)
            log_handle = open(log_dir / "run_log.txt", "w", encoding="utf-8", buffering=1)

        def _log(msg: str) -> None:
            _emit_log(msg)
            if log_handle:
                log_handle.write(msg + "\n")

        try:
            _log(f"Song Picker run_id={run_id} mode={mode} strategy={strategy} seed={seed}")
            _log(f"Source: {self.source_dir}")
            _log(f"Destination: {self.dest_dir}")
            _log(f"Files scanned: {len(paths)} loaded: {library.song_count} artists: {len(library)}")
            for err in read_errors:
                _log(f"Skipped unreadable file: {err['file']} ({err['error']})")

            current_folder = 0
            for item in planned:
                if item.folder != current_folder:
                    current_folder = item.folder
                    _log(f"Folder {item.dest.parent.name}")
                action = "NONE"
                reason = ""
                if do_transfer:
                    if item.dest.exists():
                        action = "SKIPPED"
                        reason = "destination exists"
                        report["skipped_existing"] += 1
                    else:
                        try:
                            copy_file(item.source, item.dest)
                            action = "COPY"
                            report["files_copied"] += 1
                        except OSError as e:
                            action = "FAILED"
                            reason = f"copy failed: {e}"
                            report["failed"] += 1
                _log(f"  {item.dest.name}  [{item.song.artist} - {item.song.title}] {action}")
                report["order"].append(self._build_order_entry(item, action, reason))

            _log(
                f"Done. songs={len(planned)} folders={report['folders']} "
                f"copied={report['files_copied']} skipped={report['skipped_existing']} "
                f"failed={report['failed']} read_errors={len(read_errors)}"
            )
        finally:
            if log_handle:
                log_handle.close()

        if write_logs and log_dir is not None:
            self._write_playlist_csv(log_dir / "playlist.csv", report["order"])
            (log_dir / "run_report.json").write_text(json.dumps(report, indent=2), encoding="utf-8")

        return report

    def _write_playlist_csv(self, path: Path, order: List[OrderEntry]) -> None:
        columns = ["index", "folder", "artist", "album", "title", "size_bytes", "source", "dest", "action"]
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(columns)
            for entry in order:
                writer.writerow([entry.get(col, "") for col in columns])
