"""Destination planning and validation of a copy run."""

import logging
import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from .classifier import JPEG_TREE, RAW_TREE, classify, is_raw
from .grouper import Unit
from .metadata import MetadataCache, get_capture_time
from .sequences import SequenceTag
from .utils import get_file_mtime

logger = logging.getLogger(__name__)

UNREADABLE_METADATA = "Cannot read file metadata"
SOURCE_MISSING = "Source file does not exist or cannot be accessed"
SOURCE_NOT_REGULAR = "Source is not a regular file"


@dataclass(frozen=True)
class ValidationError:
    """A problem with one source file that blocks the copy run."""
    source_path: Path
    reason: str

    def __str__(self) -> str:
        return f"{self.source_path} - {self.reason}"


@dataclass(frozen=True)
class CopyPlanEntry:
    """One file copy: absolute source and destination paths."""
    source: Path
    destination: Path


class PlanValidationError(Exception):
    """Raised when any file of a run fails validation."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        super().__init__(f"Validation failed for {len(self.errors)} files")


def destination_for(
    output_dir: Path,
    tree: str,
    date: datetime,
    filename: str,
    sequence_folder: Optional[str] = None,
) -> Path:
    """
    Build the destination path of a file.

    Layout: ``<output>/<tree>/<YYYY>/<MM>/<DD>[/<sequence_folder>]/<filename>``
    """
    target = Path(output_dir) / tree / f"{date.year:04d}" / f"{date.month:02d}" / f"{date.day:02d}"
    if sequence_folder:
        target = target / sequence_folder
    return target / filename


def _check_source(file_path: Path) -> Optional[str]:
    try:
        mode = file_path.stat().st_mode
    except OSError:
        return SOURCE_MISSING
    if not stat.S_ISREG(mode):
        return SOURCE_NOT_REGULAR
    return None


def _resolve_date(unit: Unit, representative: Path, cache: MetadataCache) -> Optional[datetime]:
    if unit.key in cache:
        date = get_capture_time(cache[unit.key][1])
        if date is not None:
            return date
    return get_file_mtime(representative)


def plan_copies(
    units: Dict[str, Unit],
    cache: MetadataCache,
    sequences: Dict[str, SequenceTag],
    output_dir: Path,
    cutoff: Optional[datetime] = None,
    show_progress: bool = False,
) -> List[CopyPlanEntry]:
    """
    Compute the destination of every file and validate the whole run.

    Every unit and file is checked before anything is returned, so all
    problems are reported together.

    Args:
        units: Units keyed by base name
        cache: Metadata cache from cache_metadata
        sequences: Sequence tags keyed by unit key
        output_dir: Destination root
        cutoff: Units dated at or before this time are skipped
        show_progress: Whether to display a progress bar

    Returns:
        Copy plan sorted by source path

    Raises:
        PlanValidationError: If any unit or file failed validation
    """
    output_dir = Path(output_dir).absolute()
    errors: List[ValidationError] = []
    plan: List[CopyPlanEntry] = []
    planned: Dict[Path, Path] = {}
    skipped_units = 0

    total_files = sum(len(unit.files) for unit in units.values())

    with tqdm(total=total_files, desc="Validating files", unit="files",
              disable=not show_progress) as pbar:
        for key in sorted(units):
            unit = units[key]
            representative = unit.representative or unit.files[0]

            date = _resolve_date(unit, representative, cache)
            if date is None:
                errors.append(ValidationError(representative.absolute(), UNREADABLE_METADATA))
                pbar.update(len(unit.files))
                continue

            if cutoff is not None and date <= cutoff:
                skipped_units += 1
                pbar.update(len(unit.files))
                continue

            tag = sequences.get(key)
            sequence_folder = tag.folder_name if tag else None
            default_tree = RAW_TREE if is_raw(representative.name) else JPEG_TREE

            for file_path in unit.files:
                pbar.update()
                source = file_path.absolute()

                problem = _check_source(file_path)
                if problem:
                    errors.append(ValidationError(source, problem))
                    continue

                tree = classify(file_path.name) or default_tree
                dest = destination_for(output_dir, tree, date, file_path.name, sequence_folder)

                if dest.exists():
                    errors.append(ValidationError(source, f"Destination already exists: {dest}"))
                    continue
                if dest in planned:
                    errors.append(ValidationError(source, f"Destination planned twice: {dest}"))
                    continue

                planned[dest] = source
                plan.append(CopyPlanEntry(source=source, destination=dest))

    if errors:
        logger.warning(f"Validation failed: {len(errors)} problematic files")
        raise PlanValidationError(sorted(errors, key=lambda e: str(e.source_path)))

    plan.sort(key=lambda entry: entry.source)
    if skipped_units:
        logger.info(f"Skipped {skipped_units:,} units not newer than {cutoff}")
    logger.info(f"Validation successful: {len(plan):,} files ready to copy")
    return plan
