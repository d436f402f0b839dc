#!filepath: queue_eta/observability/progress.py
from typing import Dict, Tuple

from queue_eta import logs


class ProgressReporter:
    """
    Counted progress lines through logs (no rich / tqdm, safe under pytest).

    start(task, total) -> advance(task) per item -> done(task)
    A line is logged every `every` items and at completion.
    """

    def __init__(self, enabled: bool = True, every: int = 100):
        self.enabled = enabled
        self.every = max(1, every)
        # task -> (current, total, unit)
        self._tasks: Dict[str, Tuple[int, int, str]] = {}

    def start(self, task: str, total: int, unit: str = ""):
        if not self.enabled:
            return
        self._tasks[task] = (0, total, unit)
        logs.info(f"[Progress] {task} started total={total} {unit}".rstrip())

    def advance(self, task: str, n: int = 1):
        if not self.enabled or task not in self._tasks:
            return
        current, total, unit = self._tasks[task]
        current += n
        self._tasks[task] = (current, total, unit)
        if current % self.every == 0 and current < total:
            logs.info(f"[Progress] {task}: {current}/{total} {unit}".rstrip())

    def current(self, task: str) -> int:
        return self._tasks.get(task, (0, 0, ""))[0]

    def done(self, task: str):
        if not self.enabled:
            return
        current, total, unit = self._tasks.pop(task, (0, 0, ""))
        logs.info(f"[Progress] {task} done {current}/{total} {unit}".rstrip())
