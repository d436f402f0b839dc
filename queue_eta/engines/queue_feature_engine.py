#!filepath: queue_eta/engines/queue_feature_engine.py
"""
QueueFeatureEngine: pure row -> feature / target maths.

No I/O. Identical input always gives bit-identical float64 output, across
runs and processes: the learning engine is scale-sensitive, so every
normalisation constant is fixed here and nowhere else.

Feature vector (10 values) for a run start S and a snapshot P:

    0  hour(S) / 23
    1  weekday(S) / 6          Monday = 0
    2  minute(S) / 59
    3  sigmoid(S.position / 512)
    4  sigmoid(S.length / 512)
    5  hour(P) / 23
    6  weekday(P) / 6
    7  minute(P) / 59
    8  sigmoid(P.position / 512)
    9  sigmoid(P.length / 512)

Target: sigmoid(remaining_ms / 1000 / 3600 / 14), i.e. the remaining wait in
hours squashed into [0.5, 1).
"""
from __future__ import annotations

import numpy as np
import pandas as pd

FEATURE_NAMES: tuple[str, ...] = (
    "start_hour",
    "start_weekday",
    "start_minute",
    "start_position",
    "start_length",
    "current_hour",
    "current_weekday",
    "current_minute",
    "current_position",
    "current_length",
)
FEATURE_WIDTH = len(FEATURE_NAMES)

POSITION_SCALE = 512.0
HOURS_SCALE = 14.0
MS_PER_HOUR = 1000.0 * 3600.0


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=np.float64)))


def inv_sigmoid(y):
    y = np.asarray(y, dtype=np.float64)
    with np.errstate(divide="ignore"):
        return -np.log(1.0 / y - 1.0)


def encode_remaining_ms(remaining_ms) -> np.ndarray:
    return sigmoid(np.asarray(remaining_ms, dtype=np.float64) / MS_PER_HOUR / HOURS_SCALE)


def decode_hours(encoded) -> np.ndarray:
    """Network output -> remaining wait in hours."""
    # outputs at or below 0.5 mean "no wait"; at 1.0 the inverse is infinite
    encoded = np.clip(np.asarray(encoded, dtype=np.float64), 0.5, np.nextafter(1.0, 0.0))
    return inv_sigmoid(encoded) * HOURS_SCALE


def encode_hours(hours) -> np.ndarray:
    return sigmoid(np.asarray(hours, dtype=np.float64) / HOURS_SCALE)


def _calendar(times_ms: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    ts = pd.to_datetime(times_ms, unit="ms", utc=True)
    hour = ts.hour.to_numpy(dtype=np.float64) / 23.0
    weekday = ts.dayofweek.to_numpy(dtype=np.float64) / 6.0
    minute = ts.minute.to_numpy(dtype=np.float64) / 59.0
    return hour, weekday, minute


class QueueFeatureEngine:
    """
    Vectorised feature builder for one queue run.

    Contract:
    - inputs are int64 arrays of equal length, already validated
    - row 0 is the run start, the last row is the run end
    - output row i corresponds to input row i
    """

    feature_names = FEATURE_NAMES

    def build(
        self,
        *,
        time: np.ndarray,
        position: np.ndarray,
        length: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = len(time)
        if n == 0:
            return np.empty((0, FEATURE_WIDTH), dtype=np.float64), np.empty(0, dtype=np.float64)

        time = np.asarray(time, dtype=np.int64)
        position = np.asarray(position, dtype=np.float64)
        length = np.asarray(length, dtype=np.float64)

        hour, weekday, minute = _calendar(time)

        start = np.array(
            [
                hour[0],
                weekday[0],
                minute[0],
                sigmoid(position[0] / POSITION_SCALE),
                sigmoid(length[0] / POSITION_SCALE),
            ],
            dtype=np.float64,
        )

        X = np.empty((n, FEATURE_WIDTH), dtype=np.float64)
        X[:, :5] = start
        X[:, 5] = hour
        X[:, 6] = weekday
        X[:, 7] = minute
        X[:, 8] = sigmoid(position / POSITION_SCALE)
        X[:, 9] = sigmoid(length / POSITION_SCALE)

        remaining_ms = time[-1] - time
        y = encode_remaining_ms(remaining_ms)

        return X, y
