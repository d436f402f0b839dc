#!filepath: queue_eta/config/log_config.py
from typing import Literal

from pydantic import BaseModel


class LogConfig(BaseModel):
    """
    File sink of the global `logs`. rotation / retention use loguru syntax.
    """

    dir: str = "logs"
    rotation: str = "1 day"
    retention: str = "30 days"
    level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "INFO"
