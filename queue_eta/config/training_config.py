# queue_eta/config/training_config.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TrainingConfig(BaseModel):
    """
    Defaults for `train`. CLI flags override every field.
    """

    # engine
    engine: str = "mlp"

    # backprop
    learning_rate: float = Field(default=0.3, gt=0)
    momentum: float = Field(default=0.1, ge=0, lt=1)
    batch_size: int = Field(default=1, ge=1)

    # loop without explicit halt condition -> per-iteration wall-clock budget
    default_loop_timer_seconds: float = Field(default=10.0, gt=0)

    # logging
    logging_enabled: bool = True
    logging_err_every: Optional[int] = Field(default=None, ge=1)
