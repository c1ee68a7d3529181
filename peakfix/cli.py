"""Click-based CLI entry point for repairing PEAK GPS/IMU recordings."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from peakfix.errors import RepairError

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=_LOG_FORMAT)


def _load(config: Path | None):
    from peakfix.harmonize.calibration import load_corrections

    try:
        return load_corrections(config)
    except RepairError as e:
        raise click.ClickException(str(e)) from e


@click.command()
@click.option("--in", "in_path", required=True, type=click.Path(path_type=Path), help="Recording or directory of recordings.")
@click.option("--out", "out_path", required=True, type=click.Path(path_type=Path), help="Output recording or directory.")
@click.option("--verbose", "-v", count=True, help="Report defects and skip counts per file (twice: dump corrected values).")
@click.option("--config", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="YAML file overriding correction constants.")
@click.option("--index", "index_path", type=click.Path(dir_okay=False, path_type=Path), help="Write a Parquet summary of the run.")
def repair(in_path: Path, out_path: Path, verbose: int, config: Path | None, index_path: Path | None):
    """Reencode recordings, converting non-SI units and removing firmware artifacts."""
    from peakfix.repair.pipeline import run_repair, summarize
    from peakfix.storage.writer import write_repair_index

    _configure_logging(verbose)
    in_path = in_path.expanduser().resolve()
    out_path = out_path.expanduser().resolve()
    if in_path == out_path:
        raise click.UsageError("--in and --out must not be the same path.")

    corrections = _load(config)
    try:
        results = run_repair(in_path, out_path, corrections)
    except RepairError as e:
        raise click.ClickException(str(e)) from e

    if index_path is not None:
        try:
            write_repair_index(index_path, results)
        except RepairError as e:
            raise click.ClickException(str(e)) from e
    click.echo(summarize(results))


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="YAML file overriding correction constants.")
def inspect(path: Path, config: Path | None):
    """Classify a recording without writing anything."""
    from peakfix.repair.classifier import classify_file

    corrections = _load(config)
    try:
        profile, stats = classify_file(path, corrections)
    except RepairError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"{path}")
    click.echo(f"  Records: {stats.records_seen}")
    click.echo(f"  Acceleration samples: {stats.sample_count}")
    click.echo(f"  Mean |a|: {stats.mean_magnitude:.3f}")
    deltas = ", ".join(f"{d:.3f}" for d in stats.max_abs_delta)
    click.echo(f"  Max axis delta: {deltas}")
    click.echo(f"  Defects: {profile.describe()}")


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """PEAK GPS/IMU recording repair tools."""


cli.add_command(repair)
cli.add_command(inspect)
