# tests/helpers.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from queue_eta.pipeline.model_artifact import ModelArtifact, Topology, init_weights

# Fri 2022-04-15 05:20:00 UTC
T0 = 1_650_000_000_000
MINUTE_MS = 60_000
HOUR_MS = 3_600_000


def queue_rows(start_position: int, length: int, steps: int, *, t0: int = T0) -> list[tuple[int, int, int]]:
    """A run moving up one position per minute."""
    return [
        (t0 + i * MINUTE_MS, max(start_position - i, 0), length)
        for i in range(steps)
    ]


def make_model(layers: Sequence[int], path: Path | None = None, seed: int = 0) -> ModelArtifact:
    topology = Topology(tuple(layers))
    return ModelArtifact(topology=topology, weights=init_weights(topology, seed), path=path)
