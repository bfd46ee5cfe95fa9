"""Storage interfaces (ports) for durable mark and trail snapshots."""

from __future__ import annotations

from typing import Protocol


class MarkStorage(Protocol):
    """Port: persists the full mark registry as one snapshot.

    Snapshot layout: ``{"marks": [Mark dict, ...], "markCounter": int}``.
    """

    def load_marks(self) -> dict | None: ...

    def save_marks(self, snapshot: dict) -> None: ...


class TrailStorage(Protocol):
    """Port: persists recorded trails as one snapshot.

    Snapshot layout: ``{"piloting": [[lon, lat]], "suction": [[lon, lat]],
    "tailings": [Polygon Feature, ...]}``.
    """

    def load_trails(self) -> dict | None: ...

    def save_trails(self, snapshot: dict) -> None: ...

    def delete_trails(self) -> None: ...
