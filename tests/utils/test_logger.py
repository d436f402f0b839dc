# tests/utils/test_logger.py
from pathlib import Path

import pytest
from loguru import logger

from queue_eta import init_logging, logs
from queue_eta.config.log_config import LogConfig
from queue_eta.utils.errors import EmptyDatasetError


def test_init_logging_writes_to_configured_dir(tmp_path: Path):
    init_logging(LogConfig(dir=str(tmp_path / "logs"), level="DEBUG"))
    try:
        logs.info("[Test] hello")
        logger.complete()
    finally:
        logger.remove()

    files = list((tmp_path / "logs").glob("queue-eta_*.log"))
    assert len(files) == 1
    assert "[Test] hello" in files[0].read_text(encoding="utf-8")


def test_catch_reraises_expected_without_traceback():
    captured = []
    sink = logger.add(lambda msg: captured.append(msg.record))

    @logs.catch(expected=(EmptyDatasetError,))
    def build():
        raise EmptyDatasetError("no rows")

    try:
        with pytest.raises(EmptyDatasetError):
            build()
    finally:
        logger.remove(sink)

    assert any("aborted" in r["message"] for r in captured)
    assert all(r["exception"] is None for r in captured)


def test_catch_logs_unexpected_with_traceback():
    captured = []
    sink = logger.add(lambda msg: captured.append(msg.record))

    @logs.catch(msg="boom")
    def explode():
        raise RuntimeError("x")

    try:
        with pytest.raises(RuntimeError):
            explode()
    finally:
        logger.remove(sink)

    assert any(r["exception"] is not None and "boom" in r["message"] for r in captured)


def test_console_shows_echo_and_warnings_only(tmp_path: Path, capsys):
    init_logging(LogConfig(dir=str(tmp_path / "logs")))
    try:
        logs.info("[Test] file only")
        logs.echo("[Train] iteration=1 mse=0.1")
        logs.warning("[Test] skipped")
        logger.complete()
    finally:
        logger.remove()

    err = capsys.readouterr().err
    assert "[Train] iteration=1 mse=0.1" in err
    assert "[Test] skipped" in err
    assert "file only" not in err
