from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, TypeVar

import typer

from specup_migrate.config import CONFIG_FILENAME, PipelineSpec, load_spec
from specup_migrate.core import run_inspect
from specup_migrate.harvest import convert_definitions_to_irefs, extract_all_definitions
from specup_migrate.splitter import split as split_project

T = TypeVar("T")

_GLYPH_COLORS: tuple[tuple[str, str], ...] = (
    ("✅", typer.colors.GREEN),
    ("❌", typer.colors.RED),
    ("⚠️", typer.colors.YELLOW),
    ("🔍", typer.colors.CYAN),
    ("ℹ️", typer.colors.BLUE),
    ("📊", typer.colors.MAGENTA),
)


def _format_timings(timings: Mapping[str, float]) -> str:
    """Return ``timings`` as newline-delimited ``name: seconds`` strings."""
    return "\n".join(f"{n}: {t:.4f}s" for n, t in timings.items())


def _color_for(message: str) -> str | None:
    text = message.lstrip()
    return next((color for glyph, color in _GLYPH_COLORS if text.startswith(glyph)), None)


def _echo_messages(messages: Iterable[str]) -> None:
    for m in messages:
        typer.secho(m, fg=_color_for(m))


def _exit_with_error(exc: BaseException | str) -> None:
    """Print ``exc`` to stderr and exit with status 1."""
    typer.secho(f"error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _safe(func: Callable[[], T]) -> T:
    """Invoke ``func`` and exit non-zero on any library error."""
    try:
        return func()
    except Exception as exc:  # pragma: no cover - exercised in CLI tests
        _exit_with_error(exc)
        raise


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


def _project_spec(directory: Path, config: Path | None, marker: str | None) -> PipelineSpec:
    """Load pipeline options for ``directory`` with CLI overrides applied."""
    path = config if config is not None else directory / CONFIG_FILENAME
    if config is not None and not config.exists():
        raise FileNotFoundError(f"config file does not exist: {config}")
    return load_spec(path, marker=marker)


def _finish(result: Any) -> None:
    _echo_messages(result.messages)
    if not result.success:
        _exit_with_error(result.error or "operation failed")


app = typer.Typer(add_completion=False, no_args_is_help=True)

_DIRECTORY = typer.Option(
    Path("."), "--directory", "-d", file_okay=False, help="Spec-Up-T project root."
)
_DRY_RUN = typer.Option(False, "--dry-run", help="Report what would change, write nothing.")
_VERBOSE = typer.Option(False, "--verbose", help="Debug logging and per-pass timings.")
_MARKER = typer.Option(None, "--marker", help="Definition marker token.")


@app.command()
def split(
    directory: Path = _DIRECTORY,
    dry_run: bool = _DRY_RUN,
    verbose: bool = _VERBOSE,
    marker: str | None = _MARKER,
    config: Path | None = typer.Option(
        None,
        "--config",
        dir_okay=False,
        help=f"Pipeline options, default <directory>/{CONFIG_FILENAME}.",
    ),
) -> None:
    """Split the aggregated glossary into one file per term."""
    _configure_logging(verbose)
    spec = _safe(lambda: _project_spec(directory, config, marker))
    result = _safe(
        lambda: split_project(directory, dry_run=dry_run, verbose=verbose, spec=spec)
    )
    if verbose and result.timings:
        typer.echo(_format_timings(result.timings))
    _finish(result)


@app.command()
def extract(
    directory: Path = _DIRECTORY,
    dry_run: bool = _DRY_RUN,
    verbose: bool = _VERBOSE,
    marker: str | None = _MARKER,
) -> None:
    """Copy every definition found in markdown_paths into its own term file."""
    _configure_logging(verbose)
    spec = _safe(lambda: _project_spec(directory, None, marker))
    result = _safe(
        lambda: extract_all_definitions(
            directory, dry_run=dry_run, verbose=verbose, marker=spec.marker
        )
    )
    _finish(result)


@app.command("convert-to-iref")
def convert_to_iref(
    directory: Path = _DIRECTORY,
    dry_run: bool = _DRY_RUN,
    verbose: bool = _VERBOSE,
    marker: str | None = _MARKER,
) -> None:
    """Replace definition blocks in markdown_paths with iref references."""
    _configure_logging(verbose)
    spec = _safe(lambda: _project_spec(directory, None, marker))
    result = _safe(
        lambda: convert_definitions_to_irefs(
            directory, dry_run=dry_run, verbose=verbose, marker=spec.marker
        )
    )
    _finish(result)


@app.command()
def inspect() -> None:
    """Print the registered analysis passes as JSON."""
    typer.echo(json.dumps(run_inspect(), indent=2))


if __name__ == "__main__":
    app()
