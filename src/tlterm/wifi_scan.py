"""Network-scan collaborator.

``start_scan`` is fire-and-forget; ``poll`` is level-triggered and returns
``None`` while a scan is outstanding, then the results list.  Callers may
poll any number of times.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

MAX_SCAN_RESULTS = 20


@dataclass(frozen=True)
class ScanResult:
    ssid: str
    rssi: int


class WifiScanner:
    """Interface the menu engine talks to."""

    def start_scan(self) -> None:
        raise NotImplementedError

    def poll(self) -> Optional[list[ScanResult]]:
        raise NotImplementedError


class StaticScanner(WifiScanner):
    """Deterministic scanner: completes after ``polls_until_done`` polls.

    Used by the simulator and tests.  ``scans_started`` counts calls to
    ``start_scan``.
    """

    def __init__(self, results: Iterable[ScanResult] = (), polls_until_done: int = 1):
        self.results = list(results)
        self.polls_until_done = polls_until_done
        self.scans_started = 0
        self._pending: Optional[int] = None

    def start_scan(self) -> None:
        self.scans_started += 1
        self._pending = self.polls_until_done

    def poll(self) -> Optional[list[ScanResult]]:
        if self._pending is None:
            return list(self.results)
        if self._pending > 0:
            self._pending -= 1
            if self._pending > 0:
                return None
        self._pending = None
        return list(self.results)
