#!filepath: queue_eta/observability/timeline_reporter.py
from typing import Dict

from queue_eta import logs


class TimelineReporter:
    """
    Leaf timer report: name, seconds, share of the total.
    Empty timelines (instrumentation disabled) log nothing.
    """

    def __init__(self, timeline: Dict[str, float], label: str):
        self.timeline = timeline
        self.label = label

    def print(self):
        if not self.timeline:
            return

        total = sum(self.timeline.values())
        logs.info(f"[Timeline] {self.label}: {len(self.timeline)} timers, {total:.3f}s")
        for name, sec in self.timeline.items():
            share = sec / total * 100 if total > 0 else 0.0
            logs.info(f"[Timeline]   {str(name):<24} {sec:>9.3f}s {share:>5.1f}%")
