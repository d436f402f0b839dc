# queue_eta/pipeline/model_artifact.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from queue_eta.utils.errors import InvalidOptionError

TOPOLOGY_SEPARATOR = "-"
OUTPUT_WIDTH = 1


# ============================================================
# Topology (FROZEN)
# ============================================================
@dataclass(frozen=True)
class Topology:
    """
    Ordered layer widths: first = input width, last = output width (1).
    """

    layers: tuple[int, ...]

    def __post_init__(self):
        if len(self.layers) < 2:
            raise InvalidOptionError(
                f"topology needs at least an input and an output layer, got {self.layers}"
            )
        if any(int(w) <= 0 for w in self.layers):
            raise InvalidOptionError(f"layer widths must be positive, got {self.layers}")
        if self.layers[-1] != OUTPUT_WIDTH:
            raise InvalidOptionError(
                f"output layer must have width {OUTPUT_WIDTH} for ETA regression, "
                f"got {self.layers[-1]}"
            )

    @classmethod
    def parse(cls, layers: str | Iterable[int | str]) -> "Topology":
        """
        "10-6-2-4-1", ["10", "6", "1"], ["10-6", "1"] or (10, 6, 1).
        A dash separates widths only after a digit, so "-5" stays negative.
        """
        if isinstance(layers, str):
            parts = [layers]
        else:
            parts = [str(p) for p in layers]

        tokens = [t for p in parts for t in re.split(r"[,\s]+|(?<=\d)-", p.strip()) if t]
        try:
            widths = tuple(int(t) for t in tokens)
        except ValueError:
            raise InvalidOptionError(f"layers must be integers, got {layers!r}") from None
        return cls(widths)

    @property
    def input_width(self) -> int:
        return self.layers[0]

    @property
    def output_width(self) -> int:
        return self.layers[-1]

    @property
    def weight_shapes(self) -> list[tuple[int, int]]:
        """(n_out, n_in + 1) per layer transition; the +1 column is the bias."""
        return [(n_out, n_in + 1) for n_in, n_out in zip(self.layers[:-1], self.layers[1:])]

    def __str__(self) -> str:
        return TOPOLOGY_SEPARATOR.join(str(w) for w in self.layers)


# ============================================================
# Model Artifact
# ============================================================
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ModelArtifact:
    """
    ModelArtifact

    Semantics:
    - topology is fixed for the artifact's lifetime
    - weights are mutated in place by training, read-only in `stat`
    - path is where the store last loaded / saved it
    """

    topology: Topology
    weights: list[np.ndarray]
    path: Path | None = None
    epochs_trained: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def input_width(self) -> int:
        return self.topology.input_width

    @property
    def name(self) -> str:
        return self.path.name if self.path is not None else str(self.topology)

    def snapshot_weights(self) -> list[np.ndarray]:
        return [w.copy() for w in self.weights]

    def restore_weights(self, snapshot: list[np.ndarray]) -> None:
        self.weights = [w.copy() for w in snapshot]

    def weights_finite(self) -> bool:
        return all(np.isfinite(w).all() for w in self.weights)


def init_weights(topology: Topology, seed: int | None = None) -> list[np.ndarray]:
    """Untrained weights: uniform in [-0.5, 0.5)."""
    rng = np.random.default_rng(seed)
    return [rng.uniform(-0.5, 0.5, size=shape) for shape in topology.weight_shapes]
