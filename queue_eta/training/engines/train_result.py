from dataclasses import dataclass
from typing import Optional

from queue_eta.training.context import SessionState


@dataclass(frozen=True)
class TrainResult:
    """
    TrainResult

    Pure in-memory summary of one finished session. No I/O semantics.
    """
    state: SessionState
    iterations: int
    epochs: int
    steps: int
    last_error: float
    halt_reason: Optional[str]
    cancelled: bool = False
