# queue_eta/workflows/offline_training.py
from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from queue_eta import logs
from queue_eta.config.app_config import AppConfig
from queue_eta.observability.instrumentation import Instrumentation
from queue_eta.pipeline.model_store import ModelStore
from queue_eta.training.context import (
    CancellationToken,
    LoggingOptions,
    TrainingSession,
    validate_options,
)
from queue_eta.training.engines.dataset_build_engine import DatasetBuildEngine
from queue_eta.training.engines.registry import resolve_learning_engine
from queue_eta.training.engines.train_result import TrainResult
from queue_eta.training.halt import build_halt_conditions
from queue_eta.training.pipeline import TrainingPipeline
from queue_eta.utils.errors import UserInputError


def build_offline_training(
        cfg: AppConfig | None = None,
        inst: Instrumentation | None = None,
) -> TrainingPipeline:
    """
    Offline Training Workflow
    """
    if cfg is None:
        cfg = AppConfig.load()

    return TrainingPipeline(
        store=ModelStore.from_config(cfg.store),
        engine_factory=resolve_learning_engine(cfg.training.engine),
        default_loop_timer_seconds=cfg.training.default_loop_timer_seconds,
        inst=inst if inst is not None else Instrumentation(),
    )


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    """
    SIGINT / SIGTERM set the token; the session stops after the current
    batch and persists. A second SIGINT falls back to KeyboardInterrupt.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        logs.warning(
            f"[Train] {signal.Signals(signum).name} received: "
            f"finishing current batch, then saving"
        )
        token.cancel()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous = {
        sig: signal.signal(sig, _handler)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@logs.catch(msg="training failed", expected=(UserInputError,))
def run_offline_training(
        data_dir: str | Path,
        model_path: str | Path,
        *,
        epochs: Optional[int] = None,
        timer: Optional[float] = None,
        mse: Optional[float] = None,
        loop: Optional[bool] = None,
        logging_enabled: Optional[bool] = None,
        logging_err_every: Optional[int] = None,
        learning_rate: Optional[float] = None,
        momentum: Optional[float] = None,
        batch_size: Optional[int] = None,
        cfg: AppConfig | None = None,
        token: CancellationToken | None = None,
        handle_signals: bool = True,
) -> TrainResult:
    """
    `train`: CLI values override config; None means "use config".

    loop left as None loops unless a target error is given.
    """
    if cfg is None:
        cfg = AppConfig.load()
    tcfg = cfg.training

    halt_conditions = build_halt_conditions(epochs=epochs, timer=timer, mse=mse)
    if loop is None:
        loop = mse is None

    learning_rate = tcfg.learning_rate if learning_rate is None else learning_rate
    momentum = tcfg.momentum if momentum is None else momentum
    batch_size = tcfg.batch_size if batch_size is None else batch_size
    logging_options = LoggingOptions(
        enabled=tcfg.logging_enabled if logging_enabled is None else logging_enabled,
        err_every=tcfg.logging_err_every if logging_err_every is None else logging_err_every,
    )

    # option errors win over a missing model or a bad CSV
    validate_options(
        halt_conditions=halt_conditions,
        loop=loop,
        learning_rate=learning_rate,
        momentum=momentum,
        batch_size=batch_size,
    )

    inst = Instrumentation()
    pipeline = build_offline_training(cfg, inst=inst)

    model = pipeline.store.load(model_path)
    dataset = DatasetBuildEngine.from_config(cfg.dataset, inst=inst).build(data_dir)

    session = TrainingSession(
        dataset=dataset,
        model=model,
        halt_conditions=halt_conditions,
        loop=loop,
        learning_rate=learning_rate,
        momentum=momentum,
        batch_size=batch_size,
        logging=logging_options,
        cancel_token=token if token is not None else CancellationToken(),
    )

    if not handle_signals:
        return pipeline.run(session)

    with cancel_on_signals(session.cancel_token):
        return pipeline.run(session)
