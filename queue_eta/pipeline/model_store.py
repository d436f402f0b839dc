# queue_eta/pipeline/model_store.py
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np

from queue_eta import logs
from queue_eta.pipeline.model_artifact import ModelArtifact, Topology, init_weights
from queue_eta.utils.errors import (
    AlreadyExistsError,
    ConflictingOptionsError,
    CorruptError,
    DataIOError,
    InvalidOptionError,
    NotFoundError,
)
from queue_eta.utils.filesystem import FileSystem

FORMAT_TAG = "queue-eta/mlp"
FORMAT_VERSION = 1


class ModelStore:
    """
    ModelStore

    Responsibility:
    - Sole owner of the on-disk model representation
    - create / load / save

    Contract:
    - save is atomic: temp file -> fsync -> os.replace, under an advisory
      lock; a failed save leaves the previous file byte-identical
    - load(save(m)) reproduces topology, weights and metadata exactly
    - file bytes are otherwise opaque to callers
    """

    def __init__(self, *, extension: str = ".json", lock: bool = True):
        self.extension = extension if extension.startswith(".") else f".{extension}"
        self.lock = lock

    @classmethod
    def from_config(cls, cfg) -> "ModelStore":
        return cls(extension=cfg.extension, lock=cfg.lock)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def resolve_target(
        self,
        topology: Topology,
        *,
        path: str | Path | None = None,
        directory: str | Path | None = None,
    ) -> Path:
        """Explicit path, or <directory>/<topology><extension>."""
        if (path is None) == (directory is None):
            raise ConflictingOptionsError("exactly one of --path or --dir must be specified")
        if path is not None:
            return Path(path)
        return Path(directory) / f"{topology}{self.extension}"

    def create(
        self,
        topology: Topology,
        *,
        path: str | Path | None = None,
        directory: str | Path | None = None,
        force: bool = False,
        seed: int | None = None,
    ) -> ModelArtifact:
        target = self.resolve_target(topology, path=path, directory=directory)

        if target.exists() and not force:
            raise AlreadyExistsError(
                f"model already exists at {target}; pass --force to overwrite it"
            )

        model = ModelArtifact(
            topology=topology,
            weights=init_weights(topology, seed),
            path=target,
        )
        self.save(model, target)

        logs.info(f"[ModelStore] created model {target} with layers {topology}")
        return model

    def load(self, path: str | Path) -> ModelArtifact:
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"model not found: {path}")

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptError(f"model file is not UTF-8 JSON: {path}") from e
        except OSError as e:
            raise DataIOError(f"cannot read model {path}: {e}") from e

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptError(f"model file is not valid JSON: {path} ({e})") from e

        model = self._decode(payload, path)
        logs.debug(f"[ModelStore] loaded {path} layers={model.topology}")
        return model

    def save(self, model: ModelArtifact, path: str | Path | None = None) -> Path:
        target = Path(path) if path is not None else model.path
        if target is None:
            raise ValueError("ModelStore.save: no target path")

        data = json.dumps(self._encode(model), indent=1).encode("utf-8")

        try:
            if self.lock:
                with FileSystem.locked(target):
                    FileSystem.safe_write(target, data)
            else:
                FileSystem.safe_write(target, data)
        except OSError as e:
            raise DataIOError(f"cannot write model {target}: {e}") from e

        model.path = target
        logs.debug(f"[ModelStore] saved {target} epochs_trained={model.epochs_trained}")
        return target

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------
    @staticmethod
    def _encode(model: ModelArtifact) -> dict[str, Any]:
        return {
            "format": FORMAT_TAG,
            "version": FORMAT_VERSION,
            "layers": list(model.topology.layers),
            "weights": [w.tolist() for w in model.weights],
            "epochs_trained": model.epochs_trained,
            "created_at": model.created_at.isoformat(),
            "updated_at": model.updated_at.isoformat() if model.updated_at else None,
            "metrics": model.metrics,
        }

    @staticmethod
    def _decode(payload: Any, path: Path) -> ModelArtifact:
        if not isinstance(payload, dict) or payload.get("format") != FORMAT_TAG:
            raise CorruptError(f"not a queue-eta model file: {path}")

        try:
            topology = Topology(tuple(int(w) for w in payload["layers"]))
            weights = [np.asarray(w, dtype=np.float64) for w in payload["weights"]]
            epochs_trained = int(payload.get("epochs_trained", 0))
            created_at = datetime.fromisoformat(payload["created_at"])
            updated_raw = payload.get("updated_at")
            updated_at = datetime.fromisoformat(updated_raw) if updated_raw else None
            metrics = dict(payload.get("metrics") or {})
        except (KeyError, TypeError, ValueError, InvalidOptionError) as e:
            raise CorruptError(f"model file {path} is malformed: {e}") from e

        shapes = [w.shape for w in weights]
        if shapes != topology.weight_shapes:
            raise CorruptError(
                f"model file {path}: weight shapes {shapes} do not match layers {topology}"
            )
        if not all(np.isfinite(w).all() for w in weights):
            raise CorruptError(f"model file {path} contains non-finite weights")

        return ModelArtifact(
            topology=topology,
            weights=weights,
            path=path,
            epochs_trained=epochs_trained,
            created_at=created_at,
            updated_at=updated_at,
            metrics=metrics,
        )
