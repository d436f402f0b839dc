# queue_eta/pipeline/parallel/types.py
from enum import Enum


class ParallelKind(str, Enum):
    """Worker pool used to parse CSV runs; values match `dataset.parallel` in config."""

    THREAD = "thread"
    PROCESS = "process"
