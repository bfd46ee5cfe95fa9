"""DredgeTrack core internal data models.

These are plain dataclasses with no framework dependencies.
JSON bodies are converted to/from these at the API boundary.

Numeric fields a receiver may not report are Optional: ``None`` means
"unknown" and is never replaced by 0, since 0 is a real measurement.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

# UBX carrier solution states.
CARR_SOLN_NONE = 0
CARR_SOLN_FLOAT = 1
CARR_SOLN_FIXED = 2

LIVE_MODE = "live"


def fix_status(fix_type: int | None, carr_soln: int | None) -> str:
    """Human-readable fix quality label."""
    if carr_soln == CARR_SOLN_FIXED:
        return "RTK FIXED"
    if carr_soln == CARR_SOLN_FLOAT:
        return "RTK FLOAT"
    if fix_type == 3:
        return "3D Fix"
    if fix_type == 2:
        return "2D Fix"
    return "No Fix"


@dataclass(frozen=True)
class Fix:
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    h_acc: float | None = None
    v_acc: float | None = None
    fix_type: int | None = None
    carr_soln: int | None = None
    num_sv: int | None = None
    rtcm_bytes: int | None = None
    fixed_count: int | None = None
    float_count: int | None = None
    battery_pct: float | None = None
    firmware_version: str | None = None
    hour: int | None = None
    minute: int | None = None
    second: int | None = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_rtk_fixed(self) -> bool:
        return self.carr_soln == CARR_SOLN_FIXED

    @property
    def fixed_rate(self) -> str:
        """Percentage of RTK fixed epochs, one decimal, "0.0" with no epochs."""
        fixed = self.fixed_count or 0
        total = fixed + (self.float_count or 0)
        if total <= 0:
            return "0.0"
        return f"{100.0 * fixed / total:.1f}"

    @property
    def time_of_day(self) -> str | None:
        """Receiver UTC time as ``HH:MM:SS UTC``, None if any part is missing."""
        if self.hour is None or self.minute is None or self.second is None:
            return None
        return f"{int(self.hour):02d}:{int(self.minute):02d}:{int(self.second):02d} UTC"


@dataclass(frozen=True)
class PositionState:
    """The latest accepted fix plus its receipt time."""
    fix: Fix
    last_update: datetime
    received_monotonic: float

    @property
    def fixed_rate(self) -> str:
        return self.fix.fixed_rate

    @property
    def timestamp(self) -> str | None:
        return self.fix.time_of_day

    def to_dict(self) -> dict:
        f = self.fix
        return {
            "latitude": f.latitude,
            "longitude": f.longitude,
            "altitude": f.altitude,
            "h_acc": f.h_acc,
            "v_acc": f.v_acc,
            "fix_type": f.fix_type,
            "carr_soln": f.carr_soln,
            "fix_status": fix_status(f.fix_type, f.carr_soln),
            "num_sv": f.num_sv,
            "rtcm_bytes": f.rtcm_bytes,
            "fixed_count": f.fixed_count,
            "float_count": f.float_count,
            "fixed_rate": f.fixed_rate,
            "battery_pct": f.battery_pct,
            "firmware_version": f.firmware_version,
            "timestamp": f.time_of_day,
            "last_update": self.last_update.isoformat(),
        }


# Shape of GET /api/position before any fix has arrived.
EMPTY_POSITION: dict = {
    key: None
    for key in (
        "latitude", "longitude", "altitude", "h_acc", "v_acc", "fix_type",
        "carr_soln", "fix_status", "num_sv", "rtcm_bytes", "fixed_count",
        "float_count", "fixed_rate", "battery_pct", "firmware_version",
        "timestamp", "last_update",
    )
}


@dataclass
class Mark:
    id: int
    label: str
    latitude: float
    longitude: float
    h_acc: float | None
    timestamp: str
    created_at: int  # epoch milliseconds

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Mark:
        return cls(
            id=int(data["id"]),
            label=data.get("label") or f"RM_{data['id']}",
            latitude=data["latitude"],
            longitude=data["longitude"],
            h_acc=data.get("h_acc"),
            timestamp=data.get("timestamp", ""),
            created_at=data.get("created_at", 0),
        )


@dataclass
class OperatorSettings:
    """Operator-local inputs to geometry derivation. Never persisted."""
    heading: float = 0.0  # degrees clockwise from true north
    location_mode: str = LIVE_MODE

    @property
    def is_live(self) -> bool:
        return self.location_mode == LIVE_MODE
