# queue_eta/training/stat_reporter.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np

from queue_eta import logs
from queue_eta.engines.legacy_eta_engine import LegacyEtaEngine
from queue_eta.engines.queue_feature_engine import decode_hours, encode_hours
from queue_eta.pipeline.model_artifact import ModelArtifact
from queue_eta.pipeline.model_store import ModelStore
from queue_eta.training.dataset import Dataset
from queue_eta.training.engines.model.mlp_train_engine import MLPTrainEngine
from queue_eta.training.engines.model_report_engine import ErrorReport, ModelReportEngine
from queue_eta.training.engines.registry import EngineFactory
from queue_eta.utils.errors import (
    EmptyDatasetError,
    ModelNotFoundError,
    NotFoundError,
    ShapeMismatchError,
)

BASELINE_NAME = "legacy formula"


@dataclass(frozen=True)
class RankedModel:
    rank: int
    name: str
    path: Path
    topology: str
    report: ErrorReport

    @property
    def mse(self) -> float:
        return self.report.mse


@dataclass(frozen=True)
class RunDetail:
    """Start-point prediction of every model for one run."""

    source: str
    position: int
    length: int
    real_hours: float
    baseline_hours: float
    predicted_hours: tuple[float, ...]  # in model input order


@dataclass(frozen=True)
class StatReport:
    ranking: tuple[RankedModel, ...]
    baseline: ErrorReport
    runs: tuple[RunDetail, ...]
    model_names: tuple[str, ...]  # input order, matches RunDetail.predicted_hours
    samples: int


class StatReporter:
    """
    StatReporter

    Semantics:
    - read-only: models go through forward passes only, weights never change
    - all models are loaded and shape-checked before any is evaluated
    - ranking is a stable ascending sort on mse
    """

    def __init__(
            self,
            *,
            store: ModelStore,
            engine_factory: EngineFactory = MLPTrainEngine,
            report_engine: ModelReportEngine | None = None,
    ):
        self.store = store
        self.engine_factory = engine_factory
        self.report_engine = report_engine or ModelReportEngine()

    def run(self, dataset: Dataset, model_paths: Sequence[str | Path]) -> StatReport:
        if dataset.is_empty:
            raise EmptyDatasetError("dataset is empty: nothing to evaluate")

        models = [self._load(p) for p in model_paths]
        for model in models:
            if model.input_width != dataset.feature_width:
                raise ShapeMismatchError(
                    expected=model.input_width,
                    actual=dataset.feature_width,
                    model=model.name,
                )

        X = dataset.X
        y = dataset.y

        predictions: list[np.ndarray] = []
        reports: list[ErrorReport] = []
        for model in models:
            pred = self.engine_factory(model).predict(X)
            report = self.report_engine.evaluate(predictions=pred, targets=y)
            predictions.append(pred)
            reports.append(report)
            logs.info(
                f"[Stat] model={model.name} mse={report.mse:.6g} "
                f"mae={report.mae_minutes:.1f}m bias={report.bias_minutes:+.1f}m"
            )

        order = sorted(range(len(models)), key=lambda i: reports[i].mse)
        ranking = tuple(
            RankedModel(
                rank=rank,
                name=models[i].name,
                path=Path(model_paths[i]),
                topology=str(models[i].topology),
                report=reports[i],
            )
            for rank, i in enumerate(order, start=1)
        )

        baseline = self._baseline(dataset)
        runs = self._run_details(dataset, predictions)

        logs.info(
            f"[Stat] models={len(models)} samples={len(dataset)} "
            f"best={ranking[0].name if ranking else None} baseline_mse={baseline.mse:.6g}"
        )

        return StatReport(
            ranking=ranking,
            baseline=baseline,
            runs=runs,
            model_names=tuple(m.name for m in models),
            samples=len(dataset),
        )

    # ------------------------------------------------------------------
    def _load(self, path: str | Path) -> ModelArtifact:
        try:
            return self.store.load(path)
        except ModelNotFoundError:
            raise
        except NotFoundError as e:
            raise ModelNotFoundError(str(e)) from e

    def _baseline(self, dataset: Dataset) -> ErrorReport:
        position = np.array([s.position for s in dataset], dtype=np.int64)
        length = np.array([s.length for s in dataset], dtype=np.int64)
        hours = LegacyEtaEngine().predict_hours(position, length)
        return self.report_engine.evaluate(predictions=encode_hours(hours), targets=dataset.y)

    @staticmethod
    def _run_details(dataset: Dataset, predictions: list[np.ndarray]) -> tuple[RunDetail, ...]:
        legacy = LegacyEtaEngine()
        y = dataset.y
        details = []
        for run in dataset.runs:
            i = run.start_index
            baseline = legacy.predict_hours(
                np.array([run.start_position]), np.array([run.start_length])
            )[0]
            details.append(
                RunDetail(
                    source=run.source,
                    position=run.start_position,
                    length=run.start_length,
                    real_hours=float(decode_hours(y[i])),
                    baseline_hours=float(baseline),
                    predicted_hours=tuple(float(decode_hours(p[i])) for p in predictions),
                )
            )
        return tuple(details)
