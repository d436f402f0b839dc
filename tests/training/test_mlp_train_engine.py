# tests/training/test_mlp_train_engine.py
import numpy as np
import pytest

from queue_eta.training.engines.model.mlp_train_engine import MLPTrainEngine
from queue_eta.training.engines.model_train_engine import Batch
from queue_eta.training.engines.registry import resolve_learning_engine
from queue_eta.utils.errors import InvalidOptionError

from helpers import make_model


def test_predict_matches_forward_pass():
    engine = MLPTrainEngine(make_model((10, 4, 1)))
    X = np.random.default_rng(0).uniform(size=(5, 10))

    batch = engine.predict(X)
    single = [engine.forward_pass(row) for row in X]

    assert batch.shape == (5,)
    assert batch == pytest.approx(single)
    assert np.all((batch > 0) & (batch < 1))


def test_predict_does_not_touch_weights():
    model = make_model((10, 4, 1))
    before = model.snapshot_weights()

    MLPTrainEngine(model).predict(np.ones((3, 10)))

    for a, b in zip(model.weights, before):
        np.testing.assert_array_equal(a, b)


def test_train_step_reduces_error():
    model = make_model((3, 4, 1), seed=2)
    engine = MLPTrainEngine(model)
    X = np.random.default_rng(3).uniform(size=(16, 3))
    y = 0.55 + 0.3 * X[:, 0]
    batch = Batch(X, y)

    _, first = engine.train_step(batch, 0.5, 0.1)
    for _ in range(300):
        _, last = engine.train_step(batch, 0.5, 0.1)

    assert last < first


def test_train_step_returns_pre_update_error():
    model = make_model((2, 1))
    engine = MLPTrainEngine(model)
    X = np.array([[0.2, 0.4]])
    y = np.array([0.7])
    expected = float((engine.predict(X)[0] - 0.7) ** 2)

    weights, error = engine.train_step(Batch(X, y), 0.3, 0.0)

    assert error == pytest.approx(expected)
    assert weights is model.weights


def test_registry():
    assert resolve_learning_engine("mlp") is MLPTrainEngine
    with pytest.raises(InvalidOptionError):
        resolve_learning_engine("svm")
