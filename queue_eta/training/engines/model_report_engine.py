# queue_eta/training/engines/model_report_engine.py
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from queue_eta.engines.queue_feature_engine import decode_hours


@dataclass(frozen=True)
class ErrorReport:
    """
    mse          : on the encoded target (what training minimises)
    mae_minutes  : mean |prediction - real| in minutes
    bias_minutes : mean (prediction - real) in minutes; > 0 = overestimates
    """

    mse: float
    mae_minutes: float
    bias_minutes: float
    samples: int


class ModelReportEngine:
    """
    ModelReportEngine

    Responsibility:
    - Turn (predictions, targets) into error metrics
    - Pure: no model access, no side effects
    """

    def evaluate(self, *, predictions: np.ndarray, targets: np.ndarray) -> ErrorReport:
        predictions = np.asarray(predictions, dtype=np.float64)
        targets = np.asarray(targets, dtype=np.float64)

        if len(targets) == 0:
            raise ValueError("[ModelReportEngine] empty eval dataset")

        pred_h = decode_hours(predictions)
        real_h = decode_hours(targets)

        return ErrorReport(
            mse=float(mean_squared_error(targets, predictions)),
            mae_minutes=float(mean_absolute_error(real_h, pred_h) * 60.0),
            bias_minutes=float(np.mean(pred_h - real_h) * 60.0),
            samples=int(len(targets)),
        )
