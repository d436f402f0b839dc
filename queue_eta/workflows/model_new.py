# queue_eta/workflows/model_new.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from queue_eta import logs
from queue_eta.config.app_config import AppConfig
from queue_eta.pipeline.model_artifact import ModelArtifact, Topology
from queue_eta.pipeline.model_store import ModelStore
from queue_eta.utils.errors import UserInputError


@logs.catch(msg="model creation failed", expected=(UserInputError,))
def create_model(
        layers: str | Sequence[int | str],
        *,
        path: str | Path | None = None,
        directory: str | Path | None = None,
        force: bool = False,
        seed: int | None = None,
        cfg: AppConfig | None = None,
) -> ModelArtifact:
    """
    `new`: untrained model with the given topology, written to disk.
    """
    if cfg is None:
        cfg = AppConfig.load()

    topology = Topology.parse(layers)
    store = ModelStore.from_config(cfg.store)

    return store.create(
        topology,
        path=path,
        directory=directory,
        force=force,
        seed=seed,
    )
