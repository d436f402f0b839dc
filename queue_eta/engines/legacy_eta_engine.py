# queue_eta/engines/legacy_eta_engine.py
"""
Legacy closed-form queue ETA.

The community estimate this project replaces, kept as the baseline row of
`stat`:

    b    = ln(f(length))
    a(p) = ln((p + C) / (length + C)) / b
    eta  = a(0) - a(position)          seconds

f is a piecewise-linear interpolation over statistically measured
(queue length -> decay factor) knots. Below the first knot f is 0 and the
estimate collapses to 0; above the last knot f is the last factor.
"""
from __future__ import annotations

import math

import numpy as np

C = 150.0

KNOTS_LENGTH = np.array(
    [93, 207, 231, 257, 412, 418, 486, 506, 550, 586, 666, 758, 789, 826],
    dtype=np.float64,
)
KNOTS_FACTOR = np.array(
    [
        0.9998618838664679,
        0.9999220416881794,
        0.9999234240704379,
        0.9999291667668093,
        0.9999410569845172,
        0.9999168965649361,
        0.9999440195022513,
        0.9999262577896301,
        0.9999462301738332,
        0.999938895110192,
        0.9999219189483673,
        0.9999473463335498,
        0.9999337457796981,
        0.9999279556964097,
    ],
    dtype=np.float64,
)


def decay_factor(length: float) -> float:
    if length < KNOTS_LENGTH[0]:
        return 0.0
    return float(np.interp(length, KNOTS_LENGTH, KNOTS_FACTOR))


def legacy_eta_seconds(position: int, length: int) -> float:
    factor = decay_factor(float(length))
    if factor <= 0.0:
        return 0.0

    b = math.log(factor)

    def a(p: float) -> float:
        return math.log((p + C) / (length + C)) / b

    return a(0.0) - a(float(position))


class LegacyEtaEngine:
    """
    Batch wrapper: (position, length) arrays -> ETA in hours.
    """

    def predict_hours(self, position: np.ndarray, length: np.ndarray) -> np.ndarray:
        return np.array(
            [legacy_eta_seconds(int(p), int(n)) / 3600.0 for p, n in zip(position, length)],
            dtype=np.float64,
        )
