"""Dredge geometry: projects the vehicle footprint from one GPS fix.

Vehicle-local frame (feet): origin at the stern-port corner of the hull,
X increases to starboard, Y increases toward the bow. The antenna is the
only observed point; every other point is placed relative to it, rotated
by the heading (degrees clockwise from true north) and converted to
latitude/longitude with a spherical-earth, small-offset approximation.

The approximation is planar and good to well under a centimetre over the
tens of metres a dredge spans. It divides by cos(latitude), so it is only
valid away from the poles; at +/-90 degrees the longitude offset is
undefined. All coordinates returned are ``[lon, lat]`` (GeoJSON order).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

FEET_TO_METERS = 0.3048

# Earth radius in meters (spherical model, shared with Haversine).
EARTH_RADIUS_M = 6_371_000.0

# Vertex count for circle approximations.
CIRCLE_SEGMENTS = 24
MARKER_CIRCLE_SEGMENTS = 32

# How far outside the hull rectangle the antenna may sit (feet).
ANTENNA_TOLERANCE_FT = 10.0

HEADING_INDICATOR_FT = 20.0
ANTENNA_MARKER_RADIUS_FT = 3.0

LocalPoint = tuple[float, float]
LonLat = list[float]


@dataclass
class VehicleGeometry:
    """Static dredge dimensions in feet."""
    hull_width: float = 32.0
    hull_length: float = 40.0
    antenna_x: float = 22.0
    antenna_y: float = 30.0
    nozzle_offset_from_hull: float = 1.5  # gap off the starboard side
    nozzle_pivot_y: float = 10.0
    nozzle_length: float = 50.0
    nozzle_diameter: float = 16 / 12
    nozzle_tip_radius: float = 2.0
    tailings_width: float = 20.0
    tailings_length: float = 6.0
    tailings_offset_y: float = -6.0  # behind the stern

    def validate(self) -> None:
        """Raise ValueError if the antenna is not on or near the hull."""
        tol = ANTENNA_TOLERANCE_FT
        if not (-tol <= self.antenna_x <= self.hull_width + tol
                and -tol <= self.antenna_y <= self.hull_length + tol):
            raise ValueError(
                f"antenna ({self.antenna_x}, {self.antenna_y}) ft is outside the "
                f"{self.hull_width}x{self.hull_length} ft hull"
            )

    @property
    def nozzle_center_x(self) -> float:
        return self.hull_width + self.nozzle_offset_from_hull + self.nozzle_diameter / 2

    @property
    def suction_tip(self) -> LocalPoint:
        return (self.nozzle_center_x, self.nozzle_pivot_y + self.nozzle_length)

    def hull_points(self) -> list[LocalPoint]:
        return [
            (0.0, 0.0),
            (self.hull_width, 0.0),
            (self.hull_width, self.hull_length),
            (0.0, self.hull_length),
        ]

    def nozzle_points(self) -> list[LocalPoint]:
        half = self.nozzle_diameter / 2
        cx = self.nozzle_center_x
        back = self.nozzle_pivot_y
        front = self.nozzle_pivot_y + self.nozzle_length
        return [(cx - half, back), (cx + half, back), (cx + half, front), (cx - half, front)]

    def tailings_points(self) -> list[LocalPoint]:
        cx = self.hull_width / 2
        half = self.tailings_width / 2
        back = self.tailings_offset_y
        front = self.tailings_offset_y + self.tailings_length
        return [(cx - half, back), (cx + half, back), (cx + half, front), (cx - half, front)]


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points."""
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def offset_to_lonlat(lat: float, lon: float, east_m: float, north_m: float) -> LonLat:
    """Shift a lat/lon by a metric east/north offset."""
    dlat = math.degrees(north_m / EARTH_RADIUS_M)
    dlon = math.degrees(east_m / EARTH_RADIUS_M) / math.cos(math.radians(lat))
    return [lon + dlon, lat + dlat]


def local_to_world(
    x: float,
    y: float,
    antenna_lat: float,
    antenna_lon: float,
    heading: float,
    geometry: VehicleGeometry,
) -> LonLat:
    """Map a vehicle-local point (feet) to ``[lon, lat]``."""
    dx = (x - geometry.antenna_x) * FEET_TO_METERS
    dy = (y - geometry.antenna_y) * FEET_TO_METERS

    theta = math.radians(heading)
    east = dx * math.cos(theta) + dy * math.sin(theta)
    north = -dx * math.sin(theta) + dy * math.cos(theta)

    return offset_to_lonlat(antenna_lat, antenna_lon, east, north)


def _ring(points: list[LocalPoint], lat: float, lon: float, heading: float,
          geometry: VehicleGeometry) -> list[LonLat]:
    coords = [local_to_world(x, y, lat, lon, heading, geometry) for x, y in points]
    coords.append(list(coords[0]))
    return coords


def _polygon_feature(name: str, ring: list[LonLat]) -> dict:
    return {
        "type": "Feature",
        "properties": {"name": name},
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


def hull_polygon(lat: float, lon: float, heading: float, geometry: VehicleGeometry) -> dict:
    return _polygon_feature("Hull", _ring(geometry.hull_points(), lat, lon, heading, geometry))


def nozzle_polygon(lat: float, lon: float, heading: float, geometry: VehicleGeometry) -> dict:
    return _polygon_feature("Nozzle", _ring(geometry.nozzle_points(), lat, lon, heading, geometry))


def tailings_polygon(lat: float, lon: float, heading: float, geometry: VehicleGeometry) -> dict:
    return _polygon_feature(
        "Tailings Zone", _ring(geometry.tailings_points(), lat, lon, heading, geometry),
    )


def suction_tip_position(lat: float, lon: float, heading: float,
                         geometry: VehicleGeometry) -> LonLat:
    tx, ty = geometry.suction_tip
    return local_to_world(tx, ty, lat, lon, heading, geometry)


def suction_tip_circle(lat: float, lon: float, heading: float, geometry: VehicleGeometry) -> dict:
    """Suction tip as a closed CIRCLE_SEGMENTS-gon around the nozzle end."""
    tx, ty = geometry.suction_tip
    r = geometry.nozzle_tip_radius
    ring = []
    for i in range(CIRCLE_SEGMENTS + 1):
        angle = 2 * math.pi * i / CIRCLE_SEGMENTS
        ring.append(local_to_world(
            tx + r * math.cos(angle), ty + r * math.sin(angle), lat, lon, heading, geometry,
        ))
    return _polygon_feature("Suction Tip", ring)


def heading_indicator(lat: float, lon: float, heading: float, geometry: VehicleGeometry) -> dict:
    """Line from the bow center extending forward along the heading."""
    cx = geometry.hull_width / 2
    start = local_to_world(cx, geometry.hull_length, lat, lon, heading, geometry)
    end = local_to_world(cx, geometry.hull_length + HEADING_INDICATOR_FT,
                         lat, lon, heading, geometry)
    return {
        "type": "Feature",
        "properties": {"name": "Heading"},
        "geometry": {"type": "LineString", "coordinates": [start, end]},
    }


def antenna_circle(lat: float, lon: float,
                   radius_ft: float = ANTENNA_MARKER_RADIUS_FT) -> dict:
    """Heading-independent circle centred on the antenna."""
    r = radius_ft * FEET_TO_METERS
    ring = []
    for i in range(MARKER_CIRCLE_SEGMENTS + 1):
        angle = 2 * math.pi * i / MARKER_CIRCLE_SEGMENTS
        ring.append(offset_to_lonlat(lat, lon, r * math.cos(angle), r * math.sin(angle)))
    return _polygon_feature("Antenna", ring)


def footprint(lat: float, lon: float, heading: float, geometry: VehicleGeometry) -> dict:
    """Every rendered dredge part as one FeatureCollection."""
    return {
        "type": "FeatureCollection",
        "features": [
            hull_polygon(lat, lon, heading, geometry),
            nozzle_polygon(lat, lon, heading, geometry),
            suction_tip_circle(lat, lon, heading, geometry),
            tailings_polygon(lat, lon, heading, geometry),
            heading_indicator(lat, lon, heading, geometry),
            antenna_circle(lat, lon),
        ],
    }
