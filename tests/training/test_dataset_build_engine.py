# tests/training/test_dataset_build_engine.py
from pathlib import Path

import pytest

from queue_eta.engines.queue_feature_engine import FEATURE_NAMES, FEATURE_WIDTH, decode_hours
from queue_eta.training.engines.dataset_build_engine import COLUMN_MAX, DatasetBuildEngine, parse_queue_csv
from queue_eta.utils.errors import DataIOError, ParseError

from helpers import MINUTE_MS, T0, queue_rows


def test_build_concatenates_files_in_name_order(tmp_path: Path, write_run):
    write_run("b.csv", queue_rows(50, 100, 3))
    write_run("a.csv", queue_rows(400, 420, 5))

    dataset = DatasetBuildEngine().build(tmp_path / "data")

    assert len(dataset) == 8
    assert [r.source for r in dataset.runs] == ["a.csv", "b.csv"]
    assert [r.start_index for r in dataset.runs] == [0, 5]
    assert [s.source for s in dataset][:5] == ["a.csv"] * 5
    assert [s.row for s in dataset][:5] == [0, 1, 2, 3, 4]
    assert dataset.feature_width == FEATURE_WIDTH
    assert dataset.feature_names == FEATURE_NAMES


def test_run_summary(data_dir: Path):
    dataset = DatasetBuildEngine().build(data_dir)
    run = dataset.runs[0]

    assert run.source == "run_a.csv"
    assert run.start_position == 412
    assert run.start_length == 430
    assert run.wait_hours == pytest.approx(5 / 60)

    start = dataset.samples[run.start_index]
    assert float(decode_hours(start.target)) == pytest.approx(run.wait_hours)


def test_build_twice_is_byte_identical(data_dir: Path):
    engine = DatasetBuildEngine()
    assert engine.build(data_dir).fingerprint() == engine.build(data_dir).fingerprint()


def test_sequential_and_threaded_builds_match(tmp_path: Path, write_run):
    for i in range(8):
        write_run(f"run_{i:02d}.csv", queue_rows(100 + 30 * i, 400, 3 + i, t0=T0 + i * 7 * MINUTE_MS))
    data = tmp_path / "data"

    sequential = DatasetBuildEngine(workers=1).build(data)
    threaded = DatasetBuildEngine(workers=4, parallel_kind="thread").build(data)

    assert sequential.fingerprint() == threaded.fingerprint()
    assert sequential == threaded


def test_header_aliases_any_order_any_case(tmp_path: Path, write_run):
    write_run(
        "alias.csv",
        [(412, T0, 430), (400, T0 + MINUTE_MS, 425)],
        header="Position,TIME,currentQueueLength",
    )
    write_run("plain.csv", [(T0, 412, 430), (T0 + MINUTE_MS, 400, 425)])

    dataset = DatasetBuildEngine().build(tmp_path / "data")
    alias, plain = dataset.runs

    assert dataset.samples[0].features == dataset.samples[2].features
    assert (alias.start_position, alias.start_length) == (plain.start_position, plain.start_length)


def test_blank_lines_ignored(tmp_path: Path, write_run):
    path = write_run("gaps.csv", [f"{T0},5,10", "", f"{T0 + MINUTE_MS},4,10", ""])
    run = parse_queue_csv(path)
    assert len(run.time) == 2


def test_ignores_non_matching_files(data_dir: Path):
    (data_dir / "notes.txt").write_text("not a run", encoding="utf-8")
    (data_dir / "nested.csv").mkdir()

    dataset = DatasetBuildEngine().build(data_dir)
    assert [r.source for r in dataset.runs] == ["run_a.csv", "run_b.csv"]


def test_empty_directory_gives_empty_dataset(tmp_path: Path):
    empty = tmp_path / "empty"
    empty.mkdir()

    dataset = DatasetBuildEngine().build(empty)
    assert dataset.is_empty
    assert len(dataset) == 0


def test_missing_directory(tmp_path: Path):
    with pytest.raises(DataIOError):
        DatasetBuildEngine().build(tmp_path / "nope")


def test_not_a_directory(tmp_path: Path):
    f = tmp_path / "file.csv"
    f.write_text("time,position,length\n", encoding="utf-8")
    with pytest.raises(DataIOError):
        DatasetBuildEngine().build(f)


# ----------------------------------------------------------------------
# malformed input
# ----------------------------------------------------------------------
def test_non_numeric_value_names_file_and_row(tmp_path: Path, write_run):
    write_run("bad.csv", [f"{T0},5,10", f"{T0 + MINUTE_MS},four,10"])

    with pytest.raises(ParseError) as exc:
        DatasetBuildEngine().build(tmp_path / "data")

    assert exc.value.source == "bad.csv"
    assert exc.value.row == 1
    assert exc.value.exit_code == 3
    assert "bad.csv" in str(exc.value)


@pytest.mark.parametrize(
    "row",
    [
        "99999999999999999999,5,10",   # beyond int64
        "9999999999999999,5,10",       # int64, but past the datetime range
        f"{T0},70000,70000",           # position / length past 16 bits
    ],
)
def test_out_of_range_values_raise_parse_error(tmp_path: Path, write_run, row):
    write_run("huge.csv", [f"{T0},5,10", row])

    with pytest.raises(ParseError) as exc:
        DatasetBuildEngine().build(tmp_path / "data")

    assert exc.value.source == "huge.csv"
    assert exc.value.row == 1
    assert "out of range" in str(exc.value)


def test_largest_datetime_timestamp_accepted(tmp_path: Path, write_run):
    latest = COLUMN_MAX["time"]
    path = write_run("edge.csv", [f"{latest - MINUTE_MS},5,10", f"{latest},0,10"])

    run = parse_queue_csv(path)

    assert list(run.time) == [latest - MINUTE_MS, latest]


@pytest.mark.parametrize(
    "rows",
    [
        [f"{T0},5,10", f"{T0 + MINUTE_MS},-4,10"],       # negative
        [f"{T0},5,10", f"{T0 + MINUTE_MS},4,10,99"],     # too many fields
        [f"{T0},5,10", f"{T0 + MINUTE_MS},4"],           # too few fields
        [f"{T0},5,10", f"{T0 - MINUTE_MS},4,10"],        # time goes backwards
        [f"{T0},5.5,10"],                                # not an integer
    ],
)
def test_malformed_rows_raise(tmp_path: Path, write_run, rows):
    write_run("bad.csv", rows)
    with pytest.raises(ParseError):
        DatasetBuildEngine().build(tmp_path / "data")


@pytest.mark.parametrize(
    "header",
    ["time,position", "time,position,length,extra", "time,position,position"],
)
def test_bad_header_raises(tmp_path: Path, write_run, header):
    write_run("bad.csv", [], header=header)
    with pytest.raises(ParseError):
        DatasetBuildEngine().build(tmp_path / "data")


def test_empty_file_raises(tmp_path: Path):
    data = tmp_path / "data"
    data.mkdir()
    (data / "empty.csv").write_text("", encoding="utf-8")

    with pytest.raises(ParseError):
        DatasetBuildEngine().build(data)


def test_header_only_file_contributes_nothing(data_dir: Path, write_run):
    write_run("run_0_header_only.csv", [])

    dataset = DatasetBuildEngine().build(data_dir)
    assert [r.source for r in dataset.runs] == ["run_a.csv", "run_b.csv"]
    assert len(dataset) == 10


def test_raise_policy_returns_nothing(data_dir: Path, write_run):
    write_run("run_z.csv", [f"{T0},x,10"])

    with pytest.raises(ParseError):
        DatasetBuildEngine(on_malformed="raise").build(data_dir)


def test_skip_policy_drops_the_whole_file(data_dir: Path, write_run):
    write_run("run_m.csv", [f"{T0},5,10", f"{T0 + MINUTE_MS},4,10", f"{T0},oops,10"])

    dataset = DatasetBuildEngine(on_malformed="skip").build(data_dir)

    assert [r.source for r in dataset.runs] == ["run_a.csv", "run_b.csv"]
    assert all(s.source != "run_m.csv" for s in dataset)


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        DatasetBuildEngine(on_malformed="ignore")
