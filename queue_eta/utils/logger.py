#!filepath: queue_eta/utils/logger.py
import os
import sys
from functools import wraps
from time import perf_counter
from typing import Callable, Optional

from loguru import logger

from queue_eta.config.log_config import LogConfig

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {process} | {message}"
CONSOLE_LEVEL_NO = logger.level("WARNING").no


def _stderr(message) -> None:
    # resolved per call so a swapped sys.stderr (CliRunner, pytest capture) is honoured
    sys.stderr.write(message)


def _console_filter(record) -> bool:
    return record["level"].no >= CONSOLE_LEVEL_NO or record["extra"].get("echo", False)


class Logging:
    """
    Global logger of queue-eta.

    One daily file sink under `cfg.dir` receives every record at or above
    `cfg.level`. Warnings and errors are also echoed to stderr so a training
    run in a terminal shows skipped files and divergence without tailing
    the log. `echo` sends an INFO record to both sinks.
    """

    def __init__(self, cfg: Optional[LogConfig] = None):
        self.cfg = cfg if cfg is not None else LogConfig()
        self._install()

    def _install(self) -> None:
        os.makedirs(self.cfg.dir, exist_ok=True)
        logger.remove()

        logger.add(
            sink=os.path.join(self.cfg.dir, "queue-eta_{time:YYYY-MM-DD}.log"),
            rotation=self.cfg.rotation,
            retention=self.cfg.retention,
            level=self.cfg.level,
            format=FILE_FORMAT,
            enqueue=True,  # parse workers may be processes
            backtrace=True,
            diagnose=False,
        )
        logger.add(
            _stderr,
            level="INFO",
            format="{level}: {message}",
            filter=_console_filter,
            colorize=False,
        )

        logger.debug(f"[Logging] file sink dir={self.cfg.dir} level={self.cfg.level}")

    def reconfigure(self, cfg: LogConfig) -> None:
        self.cfg = cfg
        self._install()

    def debug(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).info(msg, *args, **kwargs)

    def echo(self, msg: str, *args, **kwargs):
        """INFO record that also reaches the terminal."""
        logger.bind(echo=True).opt(depth=1).info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.opt(depth=1, exception=True).error(msg, *args, **kwargs)

    def catch(self, msg: str = "failed", *, expected: tuple = ()) -> Callable:
        """
        Wrap a workflow entry point.

        Exceptions in `expected` (user errors with their own exit code) are
        logged as one line and re-raised. Anything else is logged with its
        traceback and re-raised. Successful calls log their duration.
        """

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start = perf_counter()
                try:
                    result = func(*args, **kwargs)
                except expected as e:
                    logger.info(f"[{func.__name__}] aborted: {type(e).__name__}: {e}")
                    raise
                except Exception:
                    logger.exception(f"[{func.__name__}] {msg}")
                    raise

                logger.info(f"[{func.__name__}] done in {perf_counter() - start:.3f}s")
                return result

            return wrapper

        return decorator


def init_logging(cfg: LogConfig) -> Logging:
    """Point the global `logs` at the sinks described by `cfg`."""
    logs.reconfigure(cfg)
    return logs


logs = Logging(LogConfig(dir=os.getenv("QUEUE_ETA_LOG_DIR", "logs")))
