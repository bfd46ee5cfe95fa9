#!/usr/bin/env python3
"""DredgeTrack rover simulator.

Feeds the server a stream of fixes as an RTK rover on a slowly moving
dredge would: small steps along a wandering course, mostly RTK fixed with
occasional float epochs, and a draining battery.

Usage:
    # 10 minutes at 1 Hz around the default site
    python -m tools.simulator.simulate --server http://localhost:3000 --duration 600

    # Faster updates, more float epochs, also set the operator heading
    python -m tools.simulator.simulate --rate 5 --float-probability 0.2 --set-heading

    # Specific location
    python -m tools.simulator.simulate --center 64.495336,-165.402452
"""

from __future__ import annotations

import argparse
import asyncio
import math
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

EARTH_RADIUS_M = 6_371_000


@dataclass
class SimRover:
    lat: float
    lon: float
    course: float          # degrees clockwise from north
    speed_mps: float
    battery_pct: float = 100.0
    fixed_count: int = 0
    float_count: int = 0
    rtcm_bytes: int = 0
    sent: int = 0
    errors: int = 0


def move_rover(rover: SimRover, dt_seconds: float) -> None:
    """Advance the rover along its course with gentle random turns."""
    rover.course = (rover.course + random.uniform(-3, 3)) % 360
    rover.speed_mps = max(0.0, min(1.5, rover.speed_mps + random.uniform(-0.05, 0.05)))

    distance_m = rover.speed_mps * dt_seconds
    course_rad = math.radians(rover.course)
    north = distance_m * math.cos(course_rad)
    east = distance_m * math.sin(course_rad)

    rover.lat += math.degrees(north / EARTH_RADIUS_M)
    rover.lon += math.degrees(east / EARTH_RADIUS_M) / math.cos(math.radians(rover.lat))
    rover.battery_pct = max(0.0, rover.battery_pct - 0.002 * dt_seconds)


def make_fix_payload(rover: SimRover, float_probability: float) -> dict:
    """One rover report in the server's JSON shape."""
    is_fixed = random.random() >= float_probability
    if is_fixed:
        rover.fixed_count += 1
        h_acc = random.uniform(0.008, 0.02)
    else:
        rover.float_count += 1
        h_acc = random.uniform(0.1, 0.6)
    rover.rtcm_bytes += random.randint(400, 900)

    now = datetime.now(timezone.utc)
    return {
        "latitude": round(rover.lat, 9),
        "longitude": round(rover.lon, 9),
        "altitude": round(random.uniform(11.5, 12.5), 3),
        "h_acc": round(h_acc, 4),
        "v_acc": round(h_acc * 1.6, 4),
        "fix_type": 3,
        "carr_soln": 2 if is_fixed else 1,
        "num_sv": random.randint(18, 30),
        "rtcm_bytes": rover.rtcm_bytes,
        "fixed_count": rover.fixed_count,
        "float_count": rover.float_count,
        "battery_pct": round(rover.battery_pct),
        "firmware_version": "sim-1.0.0",
        "hour": now.hour,
        "min": now.minute,
        "sec": now.second,
    }


async def run_rover(client: httpx.AsyncClient, rover: SimRover, args: argparse.Namespace) -> None:
    interval = 1.0 / args.rate
    end_time = time.monotonic() + args.duration

    while time.monotonic() < end_time:
        move_rover(rover, interval)
        payload = make_fix_payload(rover, args.float_probability)

        try:
            resp = await client.post(f"{args.server}/api/position", json=payload)
            if resp.status_code == 200:
                rover.sent += 1
            else:
                rover.errors += 1
            if args.set_heading:
                await client.put(f"{args.server}/api/settings",
                                 json={"heading": round(rover.course)})
        except httpx.RequestError:
            rover.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    center_lat, center_lon = args.center
    rover = SimRover(
        lat=center_lat,
        lon=center_lon,
        course=random.uniform(0, 360),
        speed_mps=random.uniform(0.2, 0.8),
    )

    print(f"Starting rover simulation at {args.rate} Hz")
    print(f"  Center: {center_lat:.6f}, {center_lon:.6f}")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()
    async with httpx.AsyncClient(timeout=10.0) as client:
        await run_rover(client, rover, args)

        elapsed = time.monotonic() - start
        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Fixes sent: {rover.sent}")
        print(f"  Errors: {rover.errors}")
        print(f"  Fixed/float epochs: {rover.fixed_count}/{rover.float_count}")

        try:
            resp = await client.get(f"{args.server}/api/stats")
            if resp.status_code == 200:
                stats = resp.json()
                print("\nServer stats:")
                print(f"  Fixes received: {stats['fixes_received']}")
                print(f"  Trail points admitted: {stats['trail_points_admitted']}")
                print(f"  Trail points discarded: {stats['trail_points_discarded']}")
                print(f"  Observers connected: {stats['observers']['connected']}")
        except httpx.RequestError as exc:
            print(f"\nCould not read server stats: {exc}")


def main():
    parser = argparse.ArgumentParser(description="DredgeTrack rover simulator")
    parser.add_argument("--server", default="http://localhost:3000", help="Server URL")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--rate", type=float, default=1.0, help="Fixes per second")
    parser.add_argument("--center", type=str, default="45.6468,-122.3498",
                        help="Start lat,lon (default: Camas, WA)")
    parser.add_argument("--float-probability", type=float, default=0.05,
                        help="Chance an epoch is RTK float instead of fixed")
    parser.add_argument("--set-heading", action="store_true",
                        help="Also push the simulated course as the operator heading")

    args = parser.parse_args()

    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
