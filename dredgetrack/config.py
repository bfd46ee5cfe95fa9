"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: DREDGE_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from dredgetrack.core.geometry import VehicleGeometry


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class StorageConfig:
    data_dir: str = "data"
    marks_file: str = "marks.json"
    trails_file: str = "trails.json"


@dataclass
class TrailsConfig:
    min_distance_m: float = 0.5
    persist_interval_seconds: float = 5.0


@dataclass
class StalenessConfig:
    timeout_seconds: float = 10.0
    check_interval_seconds: float = 1.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


def _default_locations() -> dict[str, list[float]]:
    # name -> [lat, lon]
    return {"nome": [64.495336, -165.402452]}


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    trails: TrailsConfig = field(default_factory=TrailsConfig)
    staleness: StalenessConfig = field(default_factory=StalenessConfig)
    vehicle: VehicleGeometry = field(default_factory=VehicleGeometry)
    locations: dict[str, list[float]] = field(default_factory=_default_locations)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = ("server", "storage", "trails", "staleness", "vehicle", "logging")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "DREDGE_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "DREDGE_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "DREDGE_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "DREDGE_STORAGE_DATA_DIR": lambda v: setattr(config.storage, "data_dir", v),
        "DREDGE_STORAGE_MARKS_FILE": lambda v: setattr(config.storage, "marks_file", v),
        "DREDGE_STORAGE_TRAILS_FILE": lambda v: setattr(config.storage, "trails_file", v),
        "DREDGE_TRAILS_MIN_DISTANCE_M": lambda v: setattr(config.trails, "min_distance_m", float(v)),
        "DREDGE_TRAILS_PERSIST_INTERVAL": lambda v: setattr(config.trails, "persist_interval_seconds", float(v)),
        "DREDGE_STALENESS_TIMEOUT": lambda v: setattr(config.staleness, "timeout_seconds", float(v)),
        "DREDGE_STALENESS_CHECK_INTERVAL": lambda v: setattr(config.staleness, "check_interval_seconds", float(v)),
        "DREDGE_VEHICLE_ANTENNA_X": lambda v: setattr(config.vehicle, "antenna_x", float(v)),
        "DREDGE_VEHICLE_ANTENNA_Y": lambda v: setattr(config.vehicle, "antenna_y", float(v)),
        "DREDGE_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "DREDGE_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def _apply_section(section: object, values: dict) -> None:
    known = {f.name: f for f in fields(section)}
    for k, v in values.items():
        if k not in known:
            continue
        # YAML gives ints where floats are expected (e.g. "hull_width: 32").
        if isinstance(getattr(section, k), float) and isinstance(v, int):
            v = float(v)
        setattr(section, k, v)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path(os.environ.get("DREDGE_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for name in _SECTIONS:
            if isinstance(raw.get(name), dict):
                _apply_section(getattr(config, name), raw[name])
        if isinstance(raw.get("locations"), dict):
            config.locations = {
                str(name): [float(lat), float(lon)]
                for name, (lat, lon) in raw["locations"].items()
            }

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
