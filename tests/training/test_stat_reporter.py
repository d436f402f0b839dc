# tests/training/test_stat_reporter.py
from __future__ import annotations

import math
from pathlib import Path

import numpy as np
import pytest

from queue_eta.pipeline.model_artifact import Topology
from queue_eta.pipeline.model_store import ModelStore
from queue_eta.training.dataset import Dataset
from queue_eta.training.engines.dataset_build_engine import DatasetBuildEngine
from queue_eta.training.engines.model_train_engine import LearningEngine
from queue_eta.training.stat_reporter import StatReporter
from queue_eta.utils.errors import (
    EmptyDatasetError,
    ModelNotFoundError,
    NotFoundError,
    ShapeMismatchError,
)

TARGET = 0.6


def offset_engines(offsets: dict[str, float], created: list | None = None):
    """Engine predicting TARGET + offset[model file name] for every sample."""

    class OffsetEngine(LearningEngine):
        def forward_pass(self, features):
            return TARGET + offsets[self.model.name]

        def train_step(self, batch, learning_rate, momentum):
            raise AssertionError("stat must never train")

    def make(model):
        if created is not None:
            created.append(model.name)
        return OffsetEngine(model)

    return make


@pytest.fixture
def store() -> ModelStore:
    return ModelStore()


@pytest.fixture
def constant_dataset() -> Dataset:
    X = np.random.default_rng(1).uniform(size=(20, 10))
    return Dataset.from_arrays(X, np.full(20, TARGET))


def _models(store: ModelStore, tmp_path: Path, *names: str, layers=(10, 3, 1)) -> list[Path]:
    paths = []
    for i, name in enumerate(names):
        model = store.create(Topology(layers), path=tmp_path / name, seed=i)
        paths.append(model.path)
    return paths


def test_lower_mse_ranks_first(tmp_path: Path, store, constant_dataset):
    paths = _models(store, tmp_path, "worse.json", "better.json")
    factory = offset_engines({"worse.json": math.sqrt(0.10), "better.json": math.sqrt(0.05)})

    report = StatReporter(store=store, engine_factory=factory).run(constant_dataset, paths)

    assert [e.name for e in report.ranking] == ["better.json", "worse.json"]
    assert [e.rank for e in report.ranking] == [1, 2]
    assert report.ranking[0].mse == pytest.approx(0.05)
    assert report.ranking[1].mse == pytest.approx(0.10)
    assert report.ranking[0].topology == "10-3-1"
    assert report.ranking[0].path == tmp_path / "better.json"
    assert report.samples == 20


def test_ties_keep_input_order(tmp_path: Path, store, constant_dataset):
    paths = _models(store, tmp_path, "c.json", "a.json", "b.json")
    factory = offset_engines({"c.json": 0.1, "a.json": 0.1, "b.json": 0.05})

    report = StatReporter(store=store, engine_factory=factory).run(constant_dataset, paths)

    assert [e.name for e in report.ranking] == ["b.json", "c.json", "a.json"]


def test_empty_dataset(tmp_path: Path, store):
    paths = _models(store, tmp_path, "m.json")
    with pytest.raises(EmptyDatasetError):
        StatReporter(store=store).run(Dataset(), paths)


def test_missing_model(tmp_path: Path, store, constant_dataset):
    paths = _models(store, tmp_path, "m.json") + [tmp_path / "missing.json"]

    with pytest.raises(ModelNotFoundError) as exc:
        StatReporter(store=store).run(constant_dataset, paths)

    assert isinstance(exc.value, NotFoundError)
    assert exc.value.exit_code == 2


def test_shape_mismatch_checked_before_evaluation(tmp_path: Path, store, constant_dataset):
    paths = _models(store, tmp_path, "ok.json")
    paths += _models(store, tmp_path, "narrow.json", layers=(5, 2, 1))
    created: list[str] = []
    factory = offset_engines({"ok.json": 0.0, "narrow.json": 0.0}, created)

    with pytest.raises(ShapeMismatchError) as exc:
        StatReporter(store=store, engine_factory=factory).run(constant_dataset, paths)

    assert exc.value.expected == 5
    assert exc.value.actual == 10
    assert created == []


def test_width_seven_dataset_against_five_input_model(tmp_path: Path, store):
    paths = _models(store, tmp_path, "five.json", layers=(5, 1))
    before = (tmp_path / "five.json").read_bytes()
    dataset = Dataset.from_arrays(np.full((3, 7), 0.5), np.full(3, TARGET))

    with pytest.raises(ShapeMismatchError):
        StatReporter(store=store).run(dataset, paths)

    assert (tmp_path / "five.json").read_bytes() == before


def test_real_models_on_real_runs(tmp_path: Path, store, data_dir: Path):
    dataset = DatasetBuildEngine().build(data_dir)
    paths = _models(store, tmp_path, "x.json", "y.json")
    before = [p.read_bytes() for p in paths]

    report = StatReporter(store=store).run(dataset, paths)

    assert len(report.ranking) == 2
    assert report.ranking[0].mse <= report.ranking[1].mse
    assert report.model_names == ("x.json", "y.json")
    assert report.baseline.samples == len(dataset)

    assert [d.source for d in report.runs] == ["run_a.csv", "run_b.csv"]
    first = report.runs[0]
    assert (first.position, first.length) == (412, 430)
    assert first.real_hours == pytest.approx(5 / 60)
    assert first.baseline_hours > 0
    assert len(first.predicted_hours) == 2

    # read-only
    assert [p.read_bytes() for p in paths] == before
