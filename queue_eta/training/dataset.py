# queue_eta/training/dataset.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np


@dataclass(frozen=True)
class Sample:
    """
    One queue snapshot.

    features : normalised feature vector (fixed width within a Dataset)
    target   : encoded remaining wait
    source   : CSV file name
    row      : 0-based data row index inside the file
    position / length : raw queue position and length at the snapshot
    """

    features: tuple[float, ...]
    target: float
    source: str = ""
    row: int = 0
    position: int = 0
    length: int = 0


@dataclass(frozen=True)
class RunSummary:
    """One CSV file = one stay in the queue."""

    source: str
    start_position: int
    start_length: int
    start_time_ms: int
    end_time_ms: int
    start_index: int  # index of the run's start Sample in the Dataset

    @property
    def wait_hours(self) -> float:
        return (self.end_time_ms - self.start_time_ms) / 1000.0 / 3600.0


@dataclass(frozen=True)
class Dataset:
    """
    Dataset（IMMUTABLE）

    Semantics:
    - samples ordered by (file name, row)
    - every feature vector has the same width
    - empty is a valid value; consumers decide whether it is an error
    """

    samples: tuple[Sample, ...] = ()
    runs: tuple[RunSummary, ...] = ()
    feature_names: tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        widths = {len(s.features) for s in self.samples}
        if len(widths) > 1:
            raise ValueError(f"Dataset feature widths differ: {sorted(widths)}")

    # ------------------------------------------------------------------
    @classmethod
    def from_arrays(
        cls,
        X: np.ndarray,
        y: np.ndarray,
        *,
        source: str = "",
        feature_names: Sequence[str] = (),
    ) -> "Dataset":
        samples = tuple(
            Sample(
                features=tuple(float(v) for v in row),
                target=float(t),
                source=source,
                row=i,
            )
            for i, (row, t) in enumerate(zip(np.asarray(X), np.asarray(y)))
        )
        return cls(samples=samples, feature_names=tuple(feature_names))

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    @property
    def is_empty(self) -> bool:
        return not self.samples

    @property
    def feature_width(self) -> int:
        if not self.samples:
            return 0
        return len(self.samples[0].features)

    @property
    def X(self) -> np.ndarray:
        if not self.samples:
            return np.empty((0, 0), dtype=np.float64)
        return np.array([s.features for s in self.samples], dtype=np.float64)

    @property
    def y(self) -> np.ndarray:
        return np.array([s.target for s in self.samples], dtype=np.float64)

    def fingerprint(self) -> str:
        """SHA-256 over the float64 bytes of X and y."""
        h = hashlib.sha256()
        h.update(np.ascontiguousarray(self.X).tobytes())
        h.update(np.ascontiguousarray(self.y).tobytes())
        return h.hexdigest()
