#!filepath: queue_eta/__init__.py

from .utils.logger import Logging, logs, init_logging
from .utils.filesystem import FileSystem
from .config.app_config import AppConfig

__version__ = "0.1.0"

# alias
fs = FileSystem

__all__ = [
    "logs", "Logging", "init_logging",
    "fs",
    "AppConfig",
    "__version__",
]
