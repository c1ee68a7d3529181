"""Run the two-pass repair over one recording or a directory of recordings.

Per file:  check destination -> (skip | classify) -> (copy | rewrite).

The DefectProfile is fully computed by the classification pass before any
output byte is written.  Any IoOpenError or DecodeError aborts the whole run;
a partially written output file is left in place.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tqdm import tqdm

from peakfix.errors import DecodeError, IoOpenError
from peakfix.harmonize.calibration import Corrections, load_corrections
from peakfix.models.core import DEDUP_TYPES, DefectProfile, RepairResult, new_dedup_states
from peakfix.repair.classifier import classify_file
from peakfix.repair.corrector import correct_record
from peakfix.repair.replay import OrderedReplaySource
from peakfix.storage.writer import RecordWriter, copy_through, discover_recordings

logger = logging.getLogger(__name__)


def rewrite_file(source: Path, destination: Path, profile: DefectProfile, corrections: Corrections) -> RepairResult:
    """Second pass: replay in timestamp order, correct, and write survivors."""
    dedup = new_dedup_states()
    records_read = 0
    with OrderedReplaySource(source, corrections) as replay, RecordWriter(destination) as writer:
        for record in replay:
            records_read += 1
            corrected = correct_record(profile, dedup, record, corrections)
            if corrected is not None:
                writer.write(corrected)
        records_written = writer.records_written

    return RepairResult(
        source=source,
        destination=destination,
        outcome="rewritten",
        profile=profile,
        records_read=records_read,
        records_written=records_written,
        dedup=dedup,
    )


def process_file(source: Path, destination: Path, corrections: Corrections) -> RepairResult:
    """Repair one recording into ``destination`` unless it already exists."""
    if destination.exists():
        logger.info("%s: output exists, skipping", destination)
        return RepairResult(source=source, destination=destination, outcome="skipped")

    try:
        profile, stats = classify_file(source, corrections)
        if profile.is_fine:
            copy_through(source, destination)
            result = RepairResult(
                source=source,
                destination=destination,
                outcome="copied",
                profile=profile,
                records_read=stats.records_seen,
                records_written=stats.records_seen,
            )
        else:
            result = rewrite_file(source, destination, profile, corrections)
    except DecodeError as e:
        raise DecodeError(f"{source}: {e}") from e

    _log_result(result)
    return result


def _log_result(result: RepairResult) -> None:
    profile = result.profile
    logger.info(
        "%s: %s (defects: %s), %d of %d records written",
        result.source,
        result.outcome,
        profile.describe() if profile else "n/a",
        result.records_written,
        result.records_read,
    )
    for record_type in DEDUP_TYPES:
        state = result.dedup.get(record_type)
        if state is None or not state.skipped_count:
            continue
        logger.info(
            "  %s: skipped %d (duplicates=%d, drop ratio=%d, sentinel=%d)",
            record_type.value,
            state.skipped_count,
            state.duplicate_count,
            state.drop_ratio_count,
            state.sentinel_count,
        )


def plan_jobs(in_path: Path, out_path: Path) -> list[tuple[Path, Path]]:
    """Pair every input recording with its destination path.

    A single input file maps to ``out_path`` itself; a directory is searched
    recursively for recordings and its structure mirrored under ``out_path``.
    """
    if in_path.is_file():
        return [(in_path, out_path)]
    if not in_path.is_dir():
        raise IoOpenError(f"Input path does not exist: {in_path}")
    out_root = out_path.resolve()
    jobs = []
    for source in discover_recordings(in_path):
        # Earlier output written inside the input tree is not input
        resolved = source.resolve()
        if out_root == resolved or out_root in resolved.parents:
            continue
        jobs.append((source, out_path / source.relative_to(in_path)))
    return jobs


def run_repair(
    in_path: Path,
    out_path: Path,
    corrections: Corrections | None = None,
) -> list[RepairResult]:
    """Run the repair pipeline sequentially over every planned recording."""
    if corrections is None:
        corrections = load_corrections()

    jobs = plan_jobs(in_path, out_path)
    logger.info("Found %d recordings under %s", len(jobs), in_path)

    results = []
    for source, destination in tqdm(jobs, desc="Repairing recordings", unit="file"):
        results.append(process_file(source, destination, corrections))
    return results


def summarize(results: list[RepairResult]) -> str:
    """Plain-text run summary."""
    counts = {"copied": 0, "rewritten": 0, "skipped": 0}
    for result in results:
        counts[result.outcome] += 1
    dropped = sum(r.records_dropped for r in results)
    lines = [
        "Repair complete:",
        f"  Recordings processed: {len(results)}",
        f"  Copied unchanged: {counts['copied']}",
        f"  Rewritten: {counts['rewritten']}",
        f"  Skipped (output exists): {counts['skipped']}",
        f"  Records dropped: {dropped}",
    ]
    return "\n".join(lines)
