#!filepath: queue_eta/config/dataset_config.py
from typing import Literal

from pydantic import BaseModel, Field


class DatasetConfig(BaseModel):
    """
    CSV queue log loading.

    on_malformed:
        raise - abort the whole load on the first malformed row
        skip  - drop the offending file and log a warning
    """

    pattern: str = "*.csv"
    workers: int = Field(default=1, ge=1)
    parallel_kind: Literal["thread", "process"] = "thread"
    on_malformed: Literal["raise", "skip"] = "raise"
