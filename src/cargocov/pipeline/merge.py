"""Merge stage: raw profile housekeeping and llvm-profdata merge."""

from __future__ import annotations

from pathlib import Path

import structlog

from cargocov.config.models import RunConfig
from cargocov.core.errors import IoError
from cargocov.pipeline.process import run_cmd

log = structlog.get_logger(__name__)

RAW_PROFILE_EXTENSION = "profraw"

# Header-only text profile; llvm-profdata refuses a merge with no inputs
EMPTY_TEXT_PROFILE = ":ir\n"
EMPTY_PROFILE_NAME = "empty.proftext"


def list_files(directory: Path, extension: str) -> list[Path]:
    """List regular files in directory (non-recursive) with the given extension.

    Results are sorted by file name.

    Raises:
        IoError: If the directory cannot be read.
    """
    suffix = f".{extension}"
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise IoError.from_os_error("list directory", directory, e) from e
    return sorted(
        (p for p in entries if p.suffix == suffix and p.is_file()),
        key=lambda p: p.name,
    )


def clean_raw_profiles(coverage_dir: Path) -> int:
    """Delete raw profiles left by a previous run. Returns the number removed.

    Deletion is best effort: a file that cannot be removed is logged and
    skipped.
    """
    removed = 0
    for path in list_files(coverage_dir, RAW_PROFILE_EXTENSION):
        try:
            path.unlink()
            removed += 1
        except OSError as e:
            log.warning("raw_profile_remove_failed", path=str(path), error=str(e))
    log.debug("raw_profiles_cleaned", removed=removed)
    return removed


def merge_raw_profiles(run_config: RunConfig, profdata_tool: Path) -> list[Path]:
    """Merge every raw profile in the coverage dir into the indexed profile.

    With no raw profiles a header-only text profile is merged instead, so
    the result is a valid empty indexed profile. The placeholder is removed
    afterwards.

    Returns:
        The raw profiles that were merged, in the order they were passed.

    Raises:
        CommandFailedError: tool="merge" if llvm-profdata fails.
        IoError: If the empty placeholder profile cannot be written.
    """
    raw_profiles = list_files(run_config.coverage_dir, RAW_PROFILE_EXTENSION)
    if raw_profiles:
        log.info("coverage_merge_start", raw_profiles=len(raw_profiles))
    else:
        log.warning("coverage_merge_no_raw_profiles", coverage_dir=str(run_config.coverage_dir))

    inputs: list[Path] = list(raw_profiles)
    placeholder: Path | None = None
    if not inputs:
        placeholder = run_config.coverage_dir / EMPTY_PROFILE_NAME
        try:
            placeholder.write_text(EMPTY_TEXT_PROFILE, encoding="utf-8")
        except OSError as e:
            raise IoError.from_os_error("create file", placeholder, e) from e
        inputs.append(placeholder)

    try:
        run_cmd(
            [
                profdata_tool,
                "merge",
                "--sparse",
                "--output",
                run_config.coverage_profdata,
                *inputs,
            ],
            "merge",
        )
    finally:
        if placeholder is not None:
            placeholder.unlink(missing_ok=True)
    log.info("coverage_merge_done", profdata=str(run_config.coverage_profdata))
    return raw_profiles
