"""
CSV queue log schema (fixed per deployment)
-------------------------------------------

One file per stay in the queue. The first line is a header naming exactly
these columns, in any order, case-insensitive:

    time       unix epoch milliseconds
    position   position in the queue at that moment
    length     total queue length at that moment
               (aliases: currentqueuelength, current_queue_length)

Every following non-blank line is one snapshot, with as many fields as the
header, each a non-negative base-10 integer, timestamps non-decreasing.
Times must fall inside the pandas datetime range (see COLUMN_MAX);
position and length fit in 16 bits.
The first snapshot is the run start, the last one is the moment the player
left the queue.

Example::

    time,position,length
    1650000000000,412,430
    1650000060000,405,428
    ...
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import numpy as np
import pandas as pd

from queue_eta import logs
from queue_eta.engines.queue_feature_engine import FEATURE_NAMES, QueueFeatureEngine
from queue_eta.observability.instrumentation import Instrumentation, NoOpInstrumentation
from queue_eta.pipeline.parallel.executor import ParallelExecutor
from queue_eta.pipeline.parallel.types import ParallelKind
from queue_eta.training.dataset import Dataset, RunSummary, Sample
from queue_eta.utils.errors import DataIOError, ParseError
from queue_eta.utils.filesystem import FileSystem

REQUIRED_COLUMNS: tuple[str, ...] = ("time", "position", "length")

COLUMN_MAX: dict[str, int] = {
    "time": pd.Timestamp.max.value // 1_000_000,
    "position": 65_535,
    "length": 65_535,
}

_HEADER_ALIASES: dict[str, str] = {
    "time": "time",
    "position": "position",
    "length": "length",
    "currentqueuelength": "length",
    "current_queue_length": "length",
}


@dataclass(frozen=True)
class ParsedRun:
    """One validated CSV file, already mapped to features."""

    source: str
    time: np.ndarray
    position: np.ndarray
    length: np.ndarray
    X: np.ndarray
    y: np.ndarray


# ======================================================================
# File-level parsing (module-level: must be picklable for process pools)
# ======================================================================
def _resolve_header(values: list[str], source: str) -> list[str]:
    names: list[str] = []
    for raw in values:
        key = str(raw).strip().lower()
        if key not in _HEADER_ALIASES:
            raise ParseError(f"unknown header column '{raw}'", source=source)
        name = _HEADER_ALIASES[key]
        if name in names:
            raise ParseError(f"duplicate header column '{raw}'", source=source)
        names.append(name)

    missing = [c for c in REQUIRED_COLUMNS if c not in names]
    if missing:
        raise ParseError(f"header missing columns {missing}", source=source)
    return names


def parse_queue_csv(path: Path) -> ParsedRun:
    """
    Parse and validate one CSV file.

    Raises:
        DataIOError: file cannot be read
        ParseError: header / column count / value violations
    """
    source = path.name

    try:
        raw = pd.read_csv(
            path,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="error",
        )
    except pd.errors.EmptyDataError:
        raise ParseError("empty file, header expected", source=source)
    except pd.errors.ParserError as e:
        raise ParseError(f"wrong column count ({e})", source=source)
    except (OSError, UnicodeDecodeError) as e:
        raise DataIOError(f"cannot read {path}: {e}") from e

    columns = _resolve_header(list(raw.iloc[0]), source)
    df = raw.iloc[1:].reset_index(drop=True)
    df.columns = columns

    if len(df) == 0:
        empty = np.empty(0, dtype=np.int64)
        X, y = QueueFeatureEngine().build(time=empty, position=empty, length=empty)
        return ParsedRun(source, empty, empty, empty, X, y)

    # short rows are NaN-padded by the reader
    short = df.isna().any(axis=1)
    if short.any():
        row = int(np.flatnonzero(short.to_numpy())[0])
        raise ParseError(
            f"wrong column count, expected {len(columns)} fields",
            source=source,
            row=row,
        )

    values: dict[str, np.ndarray] = {}
    for col in REQUIRED_COLUMNS:
        text = df[col].str.strip()
        ok = text.str.fullmatch(r"\d+")
        if not ok.all():
            row = int(np.flatnonzero(~ok.to_numpy())[0])
            raise ParseError(
                f"column '{col}' must be a non-negative integer, got '{df[col].iloc[row]}'",
                source=source,
                row=row,
            )
        numbers = text.map(int)
        too_big = (numbers > COLUMN_MAX[col]).to_numpy(dtype=bool)
        if too_big.any():
            row = int(np.flatnonzero(too_big)[0])
            raise ParseError(
                f"column '{col}' out of range (max {COLUMN_MAX[col]}), got '{df[col].iloc[row]}'",
                source=source,
                row=row,
            )
        values[col] = numbers.astype(np.int64).to_numpy()

    time = values["time"]
    backwards = np.flatnonzero(np.diff(time) < 0)
    if len(backwards):
        raise ParseError("timestamp earlier than previous row", source=source, row=int(backwards[0]) + 1)

    X, y = QueueFeatureEngine().build(
        time=time,
        position=values["position"],
        length=values["length"],
    )
    return ParsedRun(source, time, values["position"], values["length"], X, y)


def _parse_captured(path: Path) -> ParsedRun | ParseError:
    """Return parse errors as values so the caller applies policy in file order."""
    try:
        return parse_queue_csv(path)
    except ParseError as e:
        return e


# ======================================================================
# Engine
# ======================================================================
class DatasetBuildEngine:
    """
    DatasetBuildEngine

    Responsibility:
    - Own ALL dataset construction semantics:
        - file discovery (sorted by name)
        - schema validation
        - feature / target mapping
        - malformed-file policy
        - concatenation across files

    Guarantees:
    - Same directory contents -> byte-identical Dataset, whatever the
      worker count or pool kind
    - on_malformed="raise": nothing is returned if any file is malformed
    """

    def __init__(
        self,
        *,
        pattern: str = "*.csv",
        workers: int = 1,
        parallel_kind: ParallelKind | str = ParallelKind.THREAD,
        on_malformed: Literal["raise", "skip"] = "raise",
        inst: Instrumentation | None = None,
    ):
        if on_malformed not in ("raise", "skip"):
            raise ValueError(f"on_malformed must be 'raise' or 'skip', got {on_malformed!r}")
        self.pattern = pattern
        self.workers = workers
        self.parallel_kind = ParallelKind(parallel_kind)
        self.on_malformed = on_malformed
        self.inst = inst if inst is not None else NoOpInstrumentation()

    @classmethod
    def from_config(cls, cfg, inst: Instrumentation | None = None) -> "DatasetBuildEngine":
        return cls(
            pattern=cfg.pattern,
            workers=cfg.workers,
            parallel_kind=cfg.parallel_kind,
            on_malformed=cfg.on_malformed,
            inst=inst,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build(self, data_dir: str | Path) -> Dataset:
        data_dir = Path(data_dir)
        if not data_dir.exists():
            raise DataIOError(f"data directory not found: {data_dir}")
        if not data_dir.is_dir():
            raise DataIOError(f"not a directory: {data_dir}")

        try:
            files = FileSystem.scan_dir(data_dir, self.pattern)
        except OSError as e:
            raise DataIOError(f"cannot list {data_dir}: {e}") from e

        self.inst.progress.start("parse_csv", len(files), "files")

        with self.inst.timer("parse_csv"):
            results = ParallelExecutor.run(
                kind=self.parallel_kind,
                items=files,
                handler=_parse_captured,
                max_workers=self.workers,
            )

        runs = self._apply_policy(results)
        dataset = self._assemble(runs)

        self.inst.progress.done("parse_csv")
        logs.info(
            f"[DatasetBuild] dir={data_dir} files={len(files)} "
            f"runs={len(dataset.runs)} samples={len(dataset)}"
        )
        return dataset

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _apply_policy(self, results: list[ParsedRun | ParseError]) -> list[ParsedRun]:
        runs: list[ParsedRun] = []
        for result in results:
            self.inst.progress.advance("parse_csv")
            if isinstance(result, ParseError):
                if self.on_malformed == "raise":
                    raise result
                logs.warning(f"[DatasetBuild] skip malformed file: {result}")
                continue

            if len(result.time) == 0:
                logs.warning(f"[DatasetBuild] {result.source} has no data rows -> skip")
                continue

            runs.append(result)
        return runs

    @staticmethod
    def _assemble(runs: list[ParsedRun]) -> Dataset:
        samples: list[Sample] = []
        summaries: list[RunSummary] = []

        for run in runs:
            summaries.append(
                RunSummary(
                    source=run.source,
                    start_position=int(run.position[0]),
                    start_length=int(run.length[0]),
                    start_time_ms=int(run.time[0]),
                    end_time_ms=int(run.time[-1]),
                    start_index=len(samples),
                )
            )
            for i in range(len(run.time)):
                samples.append(
                    Sample(
                        features=tuple(run.X[i].tolist()),
                        target=float(run.y[i]),
                        source=run.source,
                        row=i,
                        position=int(run.position[i]),
                        length=int(run.length[i]),
                    )
                )

        return Dataset(
            samples=tuple(samples),
            runs=tuple(summaries),
            feature_names=FEATURE_NAMES,
        )
