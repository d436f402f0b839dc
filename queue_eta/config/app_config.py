#!filepath: queue_eta/config/app_config.py
import yaml
from pydantic import BaseModel
from dotenv import load_dotenv
import os

from .log_config import LogConfig
from .dataset_config import DatasetConfig
from .training_config import TrainingConfig
from .store_config import StoreConfig


def project_root() -> str:
    """
    Project root, derived from this file's location:
    queue_eta/config/app_config.py -> queue_eta/config -> queue_eta -> project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(__file__), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig
    dataset: DatasetConfig
    training: TrainingConfig
    store: StoreConfig

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        Load YAML config + .env
        - path argument, else $QUEUE_ETA_CONFIG, else the packaged base.yml
        - independent of the working directory
        """
        root = project_root()

        # 1) .env at the project root
        load_dotenv(os.path.join(root, ".env"))

        # 2) resolve config file
        if path is None:
            path = os.getenv("QUEUE_ETA_CONFIG") or default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) read YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        return cls(**raw)
