# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, Sequence

# keep the import-time file sink out of the working tree
os.environ.setdefault(
    "QUEUE_ETA_LOG_DIR", os.path.join(tempfile.gettempdir(), "queue_eta_test_logs")
)

import numpy as np
import pytest
from loguru import logger

from queue_eta.training.dataset import Dataset

from helpers import T0, queue_rows


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def write_run(tmp_path: Path) -> Callable[..., Path]:
    """
    write_run("a.csv", [(time, position, length), ...]) -> path

    header defaults to "time,position,length"; rows may be raw strings.
    """

    def _write(
            name: str,
            rows: Sequence[Sequence[object] | str],
            *,
            header: str = "time,position,length",
            directory: Path | None = None,
    ) -> Path:
        directory = directory if directory is not None else tmp_path / "data"
        directory.mkdir(parents=True, exist_ok=True)
        lines = [header] if header is not None else []
        for row in rows:
            lines.append(row if isinstance(row, str) else ",".join(str(v) for v in row))
        path = directory / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def data_dir(tmp_path: Path, write_run) -> Path:
    """
    data/
        run_a.csv   6 rows
        run_b.csv   4 rows
    """
    write_run("run_a.csv", queue_rows(412, 430, 6))
    write_run("run_b.csv", queue_rows(120, 300, 4, t0=T0 + 86_400_000))
    return tmp_path / "data"


@pytest.fixture
def small_dataset() -> Dataset:
    rng = np.random.default_rng(0)
    X = rng.uniform(0.0, 1.0, size=(12, 10))
    y = rng.uniform(0.5, 0.9, size=12)
    return Dataset.from_arrays(X, y, source="synthetic.csv")

