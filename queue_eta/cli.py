#!filepath: queue_eta/cli.py
from functools import wraps
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from queue_eta import __version__, init_logging, logs
from queue_eta.config.app_config import AppConfig
from queue_eta.training.stat_reporter import BASELINE_NAME, StatReport
from queue_eta.utils.errors import UserInputError

app = typer.Typer(help="Queue ETA network trainer", no_args_is_help=True)
console = Console()


def _user_errors(func):
    """UserInputError -> red message + category exit code, no traceback.
    Anything else is logged with its traceback and re-raised."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UserInputError as e:
            print(f"[red]error:[/red] {escape(str(e))}")
            raise typer.Exit(code=e.exit_code)
        except Exception:
            logs.exception(f"[CLI] {func.__name__} failed")
            raise

    return wrapper


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj


@app.callback()
def main(
        ctx: typer.Context,
        config: Optional[Path] = typer.Option(
            None, "--config", help="YAML config file (default: $QUEUE_ETA_CONFIG or packaged base.yml)"
        ),
):
    try:
        cfg = AppConfig.load(str(config) if config is not None else None)
    except FileNotFoundError as e:
        print(f"[red]error:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)

    init_logging(cfg.log)
    ctx.obj = cfg


@app.command()
def version():
    print(f"queue-eta v{__version__}")


@app.command()
@_user_errors
def new(
        ctx: typer.Context,
        layers: List[str] = typer.Argument(..., help="Layer widths: 10-6-2-4-1 or 10 6 2 4 1"),
        path: Optional[Path] = typer.Option(None, "--path", help="Model file to write"),
        directory: Optional[Path] = typer.Option(
            None, "--dir", help="Directory; the file is named after the layers"
        ),
        force: bool = typer.Option(False, "--force", help="Overwrite an existing model"),
        seed: Optional[int] = typer.Option(None, "--seed", help="Weight initialisation seed"),
):
    """
    Create an untrained model.
    """
    from queue_eta.workflows.model_new import create_model

    model = create_model(
        layers,
        path=path,
        directory=directory,
        force=force,
        seed=seed,
        cfg=_config(ctx),
    )
    print(f"[green]created[/green] {model.path} layers={model.topology}")


@app.command()
@_user_errors
def stat(
        ctx: typer.Context,
        data_dir: Path = typer.Argument(..., help="Directory of CSV queue logs"),
        models: List[Path] = typer.Argument(..., help="Model files to compare"),
        details: bool = typer.Option(False, "--details", help="Per-run start-point predictions"),
):
    """
    Rank models by their error on a dataset.
    """
    from queue_eta.workflows.model_stat import run_model_stat

    report = run_model_stat(data_dir, models, cfg=_config(ctx))
    _render_stat(report, details=details)


@app.command()
@_user_errors
def train(
        ctx: typer.Context,
        data_dir: Path = typer.Argument(..., help="Directory of CSV queue logs"),
        model: Path = typer.Argument(..., help="Model file, updated in place"),
        epochs: Optional[int] = typer.Option(None, "--epochs", help="Halt after N epochs"),
        timer: Optional[float] = typer.Option(None, "--timer", help="Halt after SECONDS"),
        mse: Optional[float] = typer.Option(None, "--mse", help="Halt once the epoch error is <= RATE"),
        loop: Optional[bool] = typer.Option(
            None, "--loop/--no-loop", help="Restart after each halt until interrupted (default: on unless --mse)"
        ),
        logging_enabled: Optional[bool] = typer.Option(
            None, "--logging/--no-logging", help="Per-iteration error report on stderr and in the log file"
        ),
        logging_err_rate: Optional[int] = typer.Option(
            None, "--logging-err-rate", help="Log the running error every N batch steps"
        ),
        rate: Optional[float] = typer.Option(None, "--rate", help="Learning rate"),
        momentum: Optional[float] = typer.Option(None, "--momentum"),
        batch_size: Optional[int] = typer.Option(None, "--batch-size"),
):
    """
    Train a model on a dataset. Ctrl-C stops after the current batch and saves.
    """
    from queue_eta.workflows.offline_training import run_offline_training

    result = run_offline_training(
        data_dir,
        model,
        epochs=epochs,
        timer=timer,
        mse=mse,
        loop=loop,
        logging_enabled=logging_enabled,
        logging_err_every=logging_err_rate,
        learning_rate=rate,
        momentum=momentum,
        batch_size=batch_size,
        cfg=_config(ctx),
    )

    status = "cancelled" if result.cancelled else result.halt_reason
    print(
        f"[green]{result.state.value}[/green] ({status}) "
        f"iterations={result.iterations} epochs={result.epochs} "
        f"error={result.last_error:.6g}"
    )


# ----------------------------------------------------------------------
# rendering
# ----------------------------------------------------------------------
def _render_stat(report: StatReport, *, details: bool) -> None:
    table = Table(title=f"Model ranking ({report.samples} samples)")
    table.add_column("#", justify="right")
    table.add_column("model")
    table.add_column("layers")
    table.add_column("MSE", justify="right")
    table.add_column("MAE (min)", justify="right")
    table.add_column("bias (min)", justify="right")

    for entry in report.ranking:
        r = entry.report
        table.add_row(
            str(entry.rank),
            entry.name,
            entry.topology,
            f"{r.mse:.6f}",
            f"{r.mae_minutes:.1f}",
            f"{r.bias_minutes:+.1f}",
        )

    b = report.baseline
    table.add_section()
    table.add_row(
        "-", BASELINE_NAME, "-", f"{b.mse:.6f}", f"{b.mae_minutes:.1f}", f"{b.bias_minutes:+.1f}",
        style="dim",
    )
    console.print(table)

    if not details:
        return

    runs = Table(title="Start-point predictions (hours)")
    runs.add_column("run")
    runs.add_column("pos/len", justify="right")
    runs.add_column("real", justify="right")
    runs.add_column("legacy", justify="right")
    for name in report.model_names:
        runs.add_column(name, justify="right")

    for d in report.runs:
        runs.add_row(
            d.source,
            f"{d.position}/{d.length}",
            f"{d.real_hours:.2f}",
            f"{d.baseline_hours:.2f}",
            *(f"{h:.2f}" for h in d.predicted_hours),
        )
    console.print(runs)


if __name__ == "__main__":
    app()

# python -m queue_eta.cli train data/ models/10-6-1.json --epochs 50 --no-loop
