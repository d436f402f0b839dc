#!filepath: queue_eta/observability/timer.py
import time
from typing import Callable, Dict


class Timer:
    """
    Named stopwatch
    - start(name)
    - elapsed(name) -> seconds so far, keeps running
    - end(name)     -> seconds, stops
    The clock is injectable so wall-clock budgets can be tested.
    """

    def __init__(self, enabled: bool = True, clock: Callable[[], float] = time.perf_counter):
        self.enabled = enabled
        self.clock = clock
        self._start: Dict[str, float] = {}

    def start(self, name: str):
        if not self.enabled:
            return
        self._start[name] = self.clock()

    def elapsed(self, name: str) -> float:
        if not self.enabled or name not in self._start:
            return 0.0
        return self.clock() - self._start[name]

    def end(self, name: str) -> float:
        if not self.enabled:
            return 0.0
        if name not in self._start:
            return 0.0
        return self.clock() - self._start.pop(name)
