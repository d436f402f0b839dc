#!filepath: queue_eta/observability/instrumentation.py
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator

from queue_eta.observability.metrics import MetricRecorder
from queue_eta.observability.progress import ProgressReporter
from queue_eta.observability.timeline_reporter import TimelineReporter
from queue_eta.observability.timer import Timer


class Instrumentation:
    """
    Timers, progress counters and metric history of one command run.

    Only leaf timers reach the timeline; a parent scope (record=False)
    bounds wall time and leaves no trace. A leaf entered more than once
    accumulates. Nothing here logs per batch.
    """

    def __init__(self, enabled: bool = True, clock: Callable[[], float] = time.perf_counter):
        self.enabled = enabled
        self.progress = ProgressReporter(enabled=enabled)
        self.metrics = MetricRecorder(enabled=enabled)
        self._timer = Timer(enabled=enabled, clock=clock)
        self.timeline: Dict[str, float] = {}

    @contextmanager
    def timer(self, name: str, *, record: bool = True) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        self._timer.start(name)
        try:
            yield
        finally:
            seconds = self._timer.end(name)
            if record:
                self.timeline[name] = self.timeline.get(name, 0.0) + seconds

    def total_seconds(self) -> float:
        return sum(self.timeline.values())

    def generate_timeline_report(self, label: str):
        TimelineReporter(self.timeline, label).print()


class NoOpInstrumentation(Instrumentation):
    def __init__(self):
        super().__init__(enabled=False)
