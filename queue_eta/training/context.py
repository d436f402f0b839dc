# queue_eta/training/context.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from queue_eta.pipeline.model_artifact import ModelArtifact
from queue_eta.training.dataset import Dataset
from queue_eta.training.halt import HaltCondition, TargetError
from queue_eta.utils.errors import (
    ConflictingOptionsError,
    EmptyDatasetError,
    InvalidOptionError,
    NoHaltConditionError,
    ShapeMismatchError,
)


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    HALTED = "halted"
    FAILED = "failed"


class CancellationToken:
    """
    Cooperative cancellation. Set from anywhere (signal handler, another
    thread); the training loop polls it between batches.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class LoggingOptions:
    enabled: bool = True
    err_every: Optional[int] = None  # batch steps between error snapshots

    def __post_init__(self):
        if self.err_every is not None and self.err_every < 1:
            raise InvalidOptionError(f"logging-err-rate must be >= 1, got {self.err_every}")


@dataclass
class TrainingSession:
    """
    TrainingSession

    Semantics:
    - One session == one `train` invocation
    - The only in-memory handle to the model being trained
    - state is owned by TrainingPipeline
    """

    dataset: Dataset
    model: ModelArtifact
    halt_conditions: tuple[HaltCondition, ...] = ()
    loop: bool = False
    learning_rate: float = 0.3
    momentum: float = 0.1
    batch_size: int = 1
    logging: LoggingOptions = field(default_factory=LoggingOptions)
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    state: SessionState = SessionState.IDLE

    def validate(self) -> None:
        """
        Reject the session before any step runs. Order matters: option
        errors are reported before data errors.
        """
        validate_options(
            halt_conditions=self.halt_conditions,
            loop=self.loop,
            learning_rate=self.learning_rate,
            momentum=self.momentum,
            batch_size=self.batch_size,
        )

        if self.dataset.is_empty:
            raise EmptyDatasetError("dataset is empty: no samples to train on")
        if self.dataset.feature_width != self.model.input_width:
            raise ShapeMismatchError(
                expected=self.model.input_width,
                actual=self.dataset.feature_width,
                model=self.model.name,
            )


def validate_options(
        *,
        halt_conditions: tuple[HaltCondition, ...],
        loop: bool,
        learning_rate: float,
        momentum: float,
        batch_size: int,
) -> None:
    """Checks that need neither the model nor the dataset."""
    has_target_error = any(isinstance(c, TargetError) for c in halt_conditions)
    if loop and has_target_error:
        raise ConflictingOptionsError(
            "loop conflicts with mse: the error is not expected to keep "
            "decreasing across independent re-loops"
        )
    if not halt_conditions and not loop:
        raise NoHaltConditionError(
            "no halt condition: pass --epochs, --timer or --mse, or enable --loop"
        )
    if not learning_rate > 0:
        raise InvalidOptionError(f"rate must be > 0, got {learning_rate}")
    if not 0 <= momentum < 1:
        raise InvalidOptionError(f"momentum must be in [0, 1), got {momentum}")
    if batch_size < 1:
        raise InvalidOptionError(f"batch size must be >= 1, got {batch_size}")
