# queue_eta/training/pipeline.py
from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

import numpy as np

from queue_eta import logs
from queue_eta.observability.instrumentation import Instrumentation, NoOpInstrumentation
from queue_eta.observability.timer import Timer
from queue_eta.pipeline.model_artifact import utcnow
from queue_eta.pipeline.model_store import ModelStore
from queue_eta.training.context import SessionState, TrainingSession
from queue_eta.training.engines.model.mlp_train_engine import MLPTrainEngine
from queue_eta.training.engines.model_report_engine import ModelReportEngine
from queue_eta.training.engines.model_train_engine import Batch, LearningEngine
from queue_eta.training.engines.registry import EngineFactory
from queue_eta.training.engines.train_result import TrainResult
from queue_eta.training.halt import (
    HaltCondition,
    IterationProgress,
    WallClockDuration,
    first_reached,
)
from queue_eta.utils.errors import DivergenceError, SessionBusyError

# one active session per process
_ACTIVE_SESSION = threading.Lock()

CANCELLED = "cancelled"


@dataclass(frozen=True)
class IterationOutcome:
    epochs: int
    steps: int
    error: float
    reason: str


class TrainingPipeline:
    """
    TrainingPipeline

    Semantics:
    - Pipeline owns the session state machine and the iteration loop
    - LearningEngine owns the numerics
    - ModelStore owns persistence

    IDLE -> RUNNING -> HALTED | FAILED
    """

    def __init__(
            self,
            *,
            store: ModelStore,
            engine_factory: EngineFactory = MLPTrainEngine,
            default_loop_timer_seconds: float = 10.0,
            inst: Instrumentation | None = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.engine_factory = engine_factory
        self.default_loop_timer_seconds = default_loop_timer_seconds
        self.inst = inst if inst is not None else NoOpInstrumentation()
        self.clock = clock
        self.report_engine = ModelReportEngine()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self, session: TrainingSession) -> TrainResult:
        if session.state is not SessionState.IDLE:
            raise RuntimeError(f"session already used (state={session.state.value})")

        session.validate()

        if not _ACTIVE_SESSION.acquire(blocking=False):
            raise SessionBusyError("another training session is already running in this process")
        try:
            return self._run(session)
        except BaseException:
            if session.state is not SessionState.FAILED:
                session.state = SessionState.FAILED
                logs.error(f"[TrainingPipeline] FAILED model={session.model.name}")
            raise
        finally:
            _ACTIVE_SESSION.release()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _run(self, session: TrainingSession) -> TrainResult:
        model = session.model
        conditions = session.halt_conditions or (
            WallClockDuration(self.default_loop_timer_seconds),
        )
        batches = self._make_batches(session)
        engine = self.engine_factory(model)
        checkpoint = model.snapshot_weights()

        session.state = SessionState.RUNNING
        logs.info(
            f"[TrainingPipeline] START model={model.name} layers={model.topology} "
            f"samples={len(session.dataset)} batches={len(batches)} "
            f"halt={[c.reason for c in conditions]} loop={session.loop} "
            f"rate={session.learning_rate} momentum={session.momentum}"
        )

        iterations = epochs = steps = 0
        last_error = float("nan")
        reason: str | None = None

        while True:
            iterations += 1

            if session.logging.enabled:
                self._log_model_report(engine, session, iterations)

            try:
                with self.inst.timer(f"iteration_{iterations}"):
                    outcome = self._run_iteration(
                        session, engine, batches, conditions, iterations
                    )
            except DivergenceError:
                model.restore_weights(checkpoint)
                engine.reset()
                session.state = SessionState.FAILED
                logs.error(
                    f"[TrainingPipeline] FAILED model={model.name}: diverged in "
                    f"iteration {iterations}; last checkpoint kept on disk"
                )
                raise

            epochs += outcome.epochs
            steps += outcome.steps
            reason = outcome.reason
            if outcome.steps:
                last_error = outcome.error
                self._persist(session, outcome)
                checkpoint = model.snapshot_weights()
                self.inst.metrics.record("train_error", last_error)

            logs.info(
                f"[TrainingPipeline] iteration={iterations} halted by {outcome.reason} "
                f"epochs={outcome.epochs} steps={outcome.steps} error={outcome.error:.6g}"
            )

            if session.cancel_token.cancelled or not session.loop:
                break

        session.state = SessionState.HALTED
        cancelled = session.cancel_token.cancelled
        logs.info(
            f"[TrainingPipeline] DONE model={model.name} iterations={iterations} "
            f"epochs={epochs} error={last_error:.6g} cancelled={cancelled}"
        )
        self.inst.generate_timeline_report(f"train {model.name}")

        return TrainResult(
            state=session.state,
            iterations=iterations,
            epochs=epochs,
            steps=steps,
            last_error=last_error,
            halt_reason=reason,
            cancelled=cancelled,
        )

    def _run_iteration(
            self,
            session: TrainingSession,
            engine: LearningEngine,
            batches: list[Batch],
            conditions: tuple[HaltCondition, ...],
            iteration: int,
    ) -> IterationOutcome:
        """
        One iteration: epochs until a halt condition trips or the session
        is cancelled. Raises DivergenceError on a non-finite error or weight.
        """
        model = session.model
        token = session.cancel_token
        err_every = session.logging.err_every if session.logging.enabled else None
        wall_clock = tuple(c for c in conditions if isinstance(c, WallClockDuration))

        timer = Timer(clock=self.clock)
        timer.start("iteration")

        epochs = steps = 0
        error = float("nan")

        while True:
            sq_sum = 0.0
            seen = 0

            for batch in batches:
                if token.cancelled:
                    return IterationOutcome(epochs, steps, self._running(sq_sum, seen, error), CANCELLED)

                _, batch_error = engine.train_step(
                    batch, session.learning_rate, session.momentum
                )
                steps += 1

                if not math.isfinite(batch_error) or not model.weights_finite():
                    raise DivergenceError(
                        f"training diverged (error={batch_error}) at iteration {iteration}, "
                        f"epoch {epochs + 1}, step {steps}"
                    )

                sq_sum += batch_error * len(batch)
                seen += len(batch)

                if err_every and steps % err_every == 0:
                    logs.echo(
                        f"[Train] iteration={iteration} epoch={epochs + 1} "
                        f"step={steps} error={sq_sum / seen:.6g}"
                    )

                # wall-clock budget is polled between batches, not only per epoch
                if wall_clock:
                    progress = IterationProgress(epochs, timer.elapsed("iteration"), error)
                    hit = first_reached(wall_clock, progress)
                    if hit is not None:
                        return IterationOutcome(epochs, steps, sq_sum / seen, hit.reason)

            epochs += 1
            error = sq_sum / seen

            progress = IterationProgress(epochs, timer.elapsed("iteration"), error)
            hit = first_reached(conditions, progress)
            if hit is not None:
                return IterationOutcome(epochs, steps, error, hit.reason)

    def _persist(self, session: TrainingSession, outcome: IterationOutcome) -> None:
        model = session.model
        saved = replace(
            model,
            epochs_trained=model.epochs_trained + outcome.epochs,
            updated_at=utcnow(),
            metrics={"train_error": float(outcome.error)},
        )
        # the in-memory model only advances once the file is on disk
        self.store.save(saved)
        model.epochs_trained = saved.epochs_trained
        model.updated_at = saved.updated_at
        model.metrics = saved.metrics
        model.path = saved.path

    def _log_model_report(
            self,
            engine: LearningEngine,
            session: TrainingSession,
            iteration: int,
    ) -> None:
        dataset = session.dataset
        report = self.report_engine.evaluate(
            predictions=engine.predict(dataset.X),
            targets=dataset.y,
        )
        logs.echo(
            f"[Train] iteration={iteration} model={session.model.name} "
            f"mse={report.mse:.6g} mae={report.mae_minutes:.1f}m "
            f"bias={report.bias_minutes:+.1f}m"
        )

    @staticmethod
    def _make_batches(session: TrainingSession) -> list[Batch]:
        X = session.dataset.X
        y = session.dataset.y
        size = session.batch_size
        return [
            Batch(np.ascontiguousarray(X[i:i + size]), np.ascontiguousarray(y[i:i + size]))
            for i in range(0, len(y), size)
        ]

    @staticmethod
    def _running(sq_sum: float, seen: int, fallback: float) -> float:
        return sq_sum / seen if seen else fallback
