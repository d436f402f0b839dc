from typing import Callable, Dict

from queue_eta.pipeline.model_artifact import ModelArtifact
from queue_eta.training.engines.model_train_engine import LearningEngine
from queue_eta.training.engines.model.mlp_train_engine import MLPTrainEngine
from queue_eta.utils.errors import InvalidOptionError

EngineFactory = Callable[[ModelArtifact], LearningEngine]

_ENGINE_REGISTRY: Dict[str, EngineFactory] = {
    "mlp": MLPTrainEngine,
}


def resolve_learning_engine(name: str) -> EngineFactory:
    if name not in _ENGINE_REGISTRY:
        available = ", ".join(sorted(_ENGINE_REGISTRY))
        raise InvalidOptionError(
            f"No LearningEngine named {name!r}. Available: {available}"
        )

    return _ENGINE_REGISTRY[name]
