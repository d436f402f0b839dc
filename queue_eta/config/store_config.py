#!filepath: queue_eta/config/store_config.py
from pydantic import BaseModel


class StoreConfig(BaseModel):
    extension: str = ".json"
    lock: bool = True
