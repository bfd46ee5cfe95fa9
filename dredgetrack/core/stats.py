"""Service statistics.

Thread-safe in-memory counters for the fix pipeline, the mark registry,
persistence and observer fan-out. No framework dependencies.
"""

from __future__ import annotations

import threading
import time


class ServerStats:
    """Thread-safe counters, exposed as a JSON-serializable snapshot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        self.fixes_received: int = 0
        self.fixes_rtk_fixed: int = 0
        self.trail_points_admitted: int = 0
        self.trail_points_discarded: int = 0
        self.mark_mutations: int = 0
        self.events_broadcast: int = 0
        self.messages_delivered: int = 0
        self.send_failures: int = 0
        self.persistence_errors: int = 0
        self.observers_connected: int = 0
        self.observers_max: int = 0

    def record_fix(self, *, rtk_fixed: bool) -> None:
        with self._lock:
            self.fixes_received += 1
            if rtk_fixed:
                self.fixes_rtk_fixed += 1

    def record_trail_decision(self, admitted: bool) -> None:
        with self._lock:
            if admitted:
                self.trail_points_admitted += 1
            else:
                self.trail_points_discarded += 1

    def record_mark_mutation(self) -> None:
        with self._lock:
            self.mark_mutations += 1

    def record_broadcast(self) -> None:
        with self._lock:
            self.events_broadcast += 1

    def record_delivery(self) -> None:
        with self._lock:
            self.messages_delivered += 1

    def record_send_failure(self) -> None:
        with self._lock:
            self.send_failures += 1

    def record_persistence_error(self) -> None:
        with self._lock:
            self.persistence_errors += 1

    def update_observers(self, count: int) -> None:
        with self._lock:
            self.observers_connected = count
            if count > self.observers_max:
                self.observers_max = count

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        with self._lock:
            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "fixes_received": self.fixes_received,
                "fixes_rtk_fixed": self.fixes_rtk_fixed,
                "trail_points_admitted": self.trail_points_admitted,
                "trail_points_discarded": self.trail_points_discarded,
                "mark_mutations": self.mark_mutations,
                "events_broadcast": self.events_broadcast,
                "messages_delivered": self.messages_delivered,
                "send_failures": self.send_failures,
                "persistence_errors": self.persistence_errors,
                "observers": {
                    "connected": self.observers_connected,
                    "max_ever": self.observers_max,
                },
            }
