import time
import requests


class SystemClock:
    """Wall clock in whole epoch seconds."""

    def now(self) -> int:
        return int(time.time())


class ClockAdapter:
    """Reads the time from a remote simulation clock service."""

    def __init__(self, base_url: str):
        self.base = base_url.rstrip("/")

    def now(self) -> int:
        r = requests.get(f"{self.base}/time")
        r.raise_for_status()
        return r.json()["current_time"]


class SimulationClock:
    def __init__(self, start_time: int = 0):
        self._time = start_time

    def now(self) -> int:
        """Pull primitive - get current simulation time"""
        return self._time

    def advance(self, to_time: int) -> None:
        """Advance to specific time"""
        if to_time < self._time:
            raise ValueError(f"Cannot advance to {to_time}, current time is {self._time}")
        self._time = to_time

    def tick(self, delta: int = 1) -> None:
        """Advance by delta seconds"""
        self.advance(self._time + delta)
