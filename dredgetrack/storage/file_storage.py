"""File-based storage implementation.

Stores each snapshot as a single JSON document:
- marks.json:  ``{"marks": [...], "markCounter": n}``
- trails.json: ``{"piloting": [...], "suction": [...], "tailings": [...]}``

Writes go to a temporary sibling file which then replaces the target, so
a crash mid-write leaves the last fully written snapshot in place.
Methods are blocking; callers run them off the event loop.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import structlog

from dredgetrack.core.errors import PersistenceFailure

log = structlog.get_logger()


class JsonFileStorage:
    """MarkStorage and TrailStorage backed by JSON files in one directory."""

    def __init__(
        self,
        data_dir: str | Path,
        marks_file: str = "marks.json",
        trails_file: str = "trails.json",
    ) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._marks_path = self._data_dir / marks_file
        self._trails_path = self._data_dir / trails_file

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _read(self, path: Path) -> dict | None:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PersistenceFailure(f"cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceFailure(f"{path} does not hold a JSON object")
        return data

    def _write(self, path: Path, data: dict, indent: int | None = None) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=indent)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"cannot write {path}: {exc}") from exc
        log.debug("snapshot_written", path=str(path))

    def load_marks(self) -> dict | None:
        return self._read(self._marks_path)

    def save_marks(self, snapshot: dict) -> None:
        self._write(self._marks_path, snapshot, indent=2)

    def load_trails(self) -> dict | None:
        return self._read(self._trails_path)

    def save_trails(self, snapshot: dict) -> None:
        # Trails grow without bound; keep the file compact.
        self._write(self._trails_path, snapshot)

    def delete_trails(self) -> None:
        try:
            self._trails_path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceFailure(f"cannot delete {self._trails_path}: {exc}") from exc
