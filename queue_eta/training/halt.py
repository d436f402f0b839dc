# queue_eta/training/halt.py
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from queue_eta.utils.errors import InvalidOptionError


@dataclass(frozen=True)
class IterationProgress:
    """What the halt predicates see after each epoch."""

    epochs: int
    elapsed_seconds: float
    error: float


class HaltCondition(ABC):
    @abstractmethod
    def reached(self, progress: IterationProgress) -> bool:
        ...

    @property
    @abstractmethod
    def reason(self) -> str:
        ...


@dataclass(frozen=True)
class EpochCount(HaltCondition):
    epochs: int

    def __post_init__(self):
        if int(self.epochs) <= 0:
            raise InvalidOptionError(f"epochs must be > 0, got {self.epochs}")

    def reached(self, progress: IterationProgress) -> bool:
        return progress.epochs >= self.epochs

    @property
    def reason(self) -> str:
        return f"epochs={self.epochs}"


@dataclass(frozen=True)
class WallClockDuration(HaltCondition):
    seconds: float

    def __post_init__(self):
        if not (self.seconds > 0 and math.isfinite(self.seconds)):
            raise InvalidOptionError(f"timer must be > 0 seconds, got {self.seconds}")

    def reached(self, progress: IterationProgress) -> bool:
        return progress.elapsed_seconds >= self.seconds

    @property
    def reason(self) -> str:
        return f"timer={self.seconds:g}s"


@dataclass(frozen=True)
class TargetError(HaltCondition):
    mse: float

    def __post_init__(self):
        if not (self.mse >= 0 and math.isfinite(self.mse)):
            raise InvalidOptionError(f"mse must be >= 0, got {self.mse}")

    def reached(self, progress: IterationProgress) -> bool:
        return progress.error <= self.mse

    @property
    def reason(self) -> str:
        return f"mse<={self.mse:g}"


def build_halt_conditions(
    *,
    epochs: int | None = None,
    timer: float | None = None,
    mse: float | None = None,
) -> tuple[HaltCondition, ...]:
    conditions: list[HaltCondition] = []
    if epochs is not None:
        conditions.append(EpochCount(epochs))
    if timer is not None:
        conditions.append(WallClockDuration(float(timer)))
    if mse is not None:
        conditions.append(TargetError(float(mse)))
    return tuple(conditions)


def first_reached(
    conditions: tuple[HaltCondition, ...],
    progress: IterationProgress,
) -> HaltCondition | None:
    for condition in conditions:
        if condition.reached(progress):
            return condition
    return None
