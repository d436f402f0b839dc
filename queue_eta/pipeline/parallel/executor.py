# queue_eta/pipeline/parallel/executor.py
from __future__ import annotations

import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Callable, Iterable, TypeVar

from queue_eta.pipeline.parallel.types import ParallelKind
from queue_eta import logs

T = TypeVar("T")


class ParallelExecutor:
    """
    ParallelExecutor

    - one handler call per item
    - results ALWAYS come back in input order, whatever the completion order
    - workers == 1 runs inline (no pool)
    - the first handler exception propagates; pending items are cancelled
    """

    @staticmethod
    def run(
            *,
            kind: ParallelKind | str,
            items: Iterable[T],
            handler: Callable[[T], Any],
            max_workers: int | None = None,
    ) -> list[Any]:
        items = list(items)
        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return []

        kind = ParallelKind(kind)
        workers = ParallelExecutor._resolve_workers(items, max_workers)

        logs.info(
            f"[ParallelExecutor] start "
            f"kind={kind.value} total={len(items)} workers={workers}"
        )

        if workers == 1:
            return ParallelExecutor._run_sequential(items, handler)
        return ParallelExecutor._run_parallel(items, handler, workers, kind)

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return min(cpu, len(items))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _run_sequential(
            items: list,
            handler: Callable[[Any], Any],
    ) -> list[Any]:
        return [handler(item) for item in items]

    @staticmethod
    def _make_pool(kind: ParallelKind, workers: int) -> Executor:
        if kind is ParallelKind.PROCESS:
            return ProcessPoolExecutor(max_workers=workers)
        return ThreadPoolExecutor(max_workers=workers)

    @staticmethod
    def _run_parallel(
            items: list,
            handler: Callable[[Any], Any],
            workers: int,
            kind: ParallelKind,
    ) -> list[Any]:
        with ParallelExecutor._make_pool(kind, workers) as pool:
            futures = [pool.submit(handler, item) for item in items]
            try:
                # collect by submission index, not completion order
                return [fut.result() for fut in futures]
            except BaseException:
                for fut in futures:
                    fut.cancel()
                raise
