# tests/engines/test_legacy_eta_engine.py
import math

import numpy as np
import pytest

from queue_eta.engines.legacy_eta_engine import (
    C,
    KNOTS_FACTOR,
    LegacyEtaEngine,
    decay_factor,
    legacy_eta_seconds,
)


def test_decay_factor_outside_knots():
    assert decay_factor(50) == 0.0
    assert decay_factor(93) == KNOTS_FACTOR[0]
    assert decay_factor(5000) == KNOTS_FACTOR[-1]


def test_decay_factor_interpolates():
    # 150 is halfway between the 93 and 207 knots
    assert decay_factor(150) == pytest.approx((KNOTS_FACTOR[0] + KNOTS_FACTOR[1]) / 2)


def test_short_queue_has_no_estimate():
    assert legacy_eta_seconds(40, 80) == 0.0


def test_front_of_queue_is_zero():
    assert legacy_eta_seconds(0, 430) == pytest.approx(0.0)


def test_eta_matches_closed_form():
    position, length = 300, 430
    b = math.log(decay_factor(length))
    expected = (
        math.log(C / (length + C)) / b
        - math.log((position + C) / (length + C)) / b
    )
    assert legacy_eta_seconds(position, length) == pytest.approx(expected)


def test_eta_grows_with_position():
    etas = [legacy_eta_seconds(p, 430) for p in (10, 100, 300, 430)]
    assert all(e > 0 for e in etas)
    assert etas == sorted(etas)


def test_predict_hours_batch():
    hours = LegacyEtaEngine().predict_hours(np.array([300, 0, 40]), np.array([430, 430, 80]))

    assert hours.shape == (3,)
    assert hours[0] == pytest.approx(legacy_eta_seconds(300, 430) / 3600)
    assert hours[1] == pytest.approx(0.0)
    assert hours[2] == 0.0
