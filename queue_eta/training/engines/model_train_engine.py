from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple, Sequence

import numpy as np

from queue_eta.pipeline.model_artifact import ModelArtifact


class Batch(NamedTuple):
    X: np.ndarray  # (n, input_width)
    y: np.ndarray  # (n,)

    def __len__(self) -> int:
        return len(self.y)


class LearningEngine(ABC):
    """
    Abstract LearningEngine (capability interface)

    Bound to ONE ModelArtifact. Orchestration only talks to this surface,
    so the numeric implementation is swappable.

    - forward_pass / predict NEVER mutate weights
    - train_step mutates model.weights and returns (weights, scalar_error),
      where the error is the batch MSE measured before the update
    """

    def __init__(self, model: ModelArtifact):
        self.model = model

    @abstractmethod
    def forward_pass(self, features: Sequence[float]) -> float:
        raise NotImplementedError

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Vectorised forward pass; engines may override."""
        X = np.asarray(X, dtype=np.float64)
        return np.array([self.forward_pass(row) for row in X], dtype=np.float64)

    @abstractmethod
    def train_step(
        self,
        batch: Batch,
        learning_rate: float,
        momentum: float,
    ) -> tuple[list[np.ndarray], float]:
        raise NotImplementedError

    def reset(self) -> None:
        """Drop optimiser state (e.g. after weights were restored)."""
