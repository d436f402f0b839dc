#!filepath: queue_eta/observability/metrics.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from queue_eta import logs


@dataclass
class MetricRecorder:
    """
    name -> every recorded value, in recording order.
    The training loop records one value per iteration.
    """

    enabled: bool = True
    history: Dict[str, List[Any]] = field(default_factory=dict)

    def record(self, name: str, value: Any):
        if not self.enabled:
            return
        self.history.setdefault(name, []).append(value)
        logs.info(f"[Metric] {name}[{len(self.history[name])}] = {value}")

    def last(self, name: str) -> Optional[Any]:
        values = self.history.get(name)
        return values[-1] if values else None
