# queue_eta/workflows/model_stat.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from queue_eta import logs
from queue_eta.config.app_config import AppConfig
from queue_eta.observability.instrumentation import Instrumentation
from queue_eta.pipeline.model_store import ModelStore
from queue_eta.training.engines.dataset_build_engine import DatasetBuildEngine
from queue_eta.training.engines.registry import resolve_learning_engine
from queue_eta.training.stat_reporter import StatReport, StatReporter
from queue_eta.utils.errors import UserInputError


@logs.catch(msg="stat failed", expected=(UserInputError,))
def run_model_stat(
        data_dir: str | Path,
        model_paths: Sequence[str | Path],
        *,
        cfg: AppConfig | None = None,
) -> StatReport:
    """
    `stat`: rank models by error on the CSV logs in data_dir.
    """
    if cfg is None:
        cfg = AppConfig.load()
    inst = Instrumentation()

    dataset = DatasetBuildEngine.from_config(cfg.dataset, inst=inst).build(data_dir)

    reporter = StatReporter(
        store=ModelStore.from_config(cfg.store),
        engine_factory=resolve_learning_engine(cfg.training.engine),
    )
    with inst.timer("stat"):
        report = reporter.run(dataset, list(model_paths))

    inst.generate_timeline_report("stat")
    return report
