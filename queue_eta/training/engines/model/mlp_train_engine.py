# queue_eta/training/engines/model/mlp_train_engine.py
from __future__ import annotations

from typing import Sequence

import numpy as np

from queue_eta.pipeline.model_artifact import ModelArtifact
from queue_eta.training.engines.model_train_engine import Batch, LearningEngine


def _sigmoid(z: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-z))


class MLPTrainEngine(LearningEngine):
    """
    Fully connected sigmoid network, squared-error backprop with momentum.

    Weight layout per layer: (n_out, n_in + 1), bias in the last column.
    Every layer (output included) is sigmoid, which matches the target
    encoding in (0, 1).
    """

    def __init__(self, model: ModelArtifact):
        super().__init__(model)
        self._velocity: list[np.ndarray] = [np.zeros_like(w) for w in model.weights]

    def reset(self) -> None:
        self._velocity = [np.zeros_like(w) for w in self.model.weights]

    # ------------------------------------------------------------------
    # Forward
    # ------------------------------------------------------------------
    def _activations(self, X: np.ndarray) -> list[np.ndarray]:
        acts = [X]
        a = X
        for W in self.model.weights:
            a = _sigmoid(a @ W[:, :-1].T + W[:, -1])
            acts.append(a)
        return acts

    def predict(self, X: np.ndarray) -> np.ndarray:
        X = np.atleast_2d(np.asarray(X, dtype=np.float64))
        return self._activations(X)[-1][:, 0]

    def forward_pass(self, features: Sequence[float]) -> float:
        return float(self.predict(np.asarray(features, dtype=np.float64)[None, :])[0])

    # ------------------------------------------------------------------
    # Train
    # ------------------------------------------------------------------
    def train_step(
        self,
        batch: Batch,
        learning_rate: float,
        momentum: float,
    ) -> tuple[list[np.ndarray], float]:
        X = np.atleast_2d(np.asarray(batch.X, dtype=np.float64))
        y = np.asarray(batch.y, dtype=np.float64).reshape(-1, 1)
        n = len(y)

        acts = self._activations(X)
        out = acts[-1]
        diff = out - y
        error = float(np.mean(diff ** 2))

        # output delta for 0.5 * (out - y)^2 through the sigmoid
        delta = diff * out * (1.0 - out)

        weights = self.model.weights
        grads: list[np.ndarray] = [None] * len(weights)
        for layer in range(len(weights) - 1, -1, -1):
            a_prev = acts[layer]
            a_prev_bias = np.hstack([a_prev, np.ones((n, 1))])
            grads[layer] = delta.T @ a_prev_bias / n
            if layer > 0:
                delta = (delta @ weights[layer][:, :-1]) * a_prev * (1.0 - a_prev)

        for layer, grad in enumerate(grads):
            self._velocity[layer] = learning_rate * grad + momentum * self._velocity[layer]
            weights[layer] = weights[layer] - self._velocity[layer]

        return weights, error
