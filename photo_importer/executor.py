"""Execution of a validated copy plan."""

import logging
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from tqdm import tqdm

from .config import Config
from .planner import CopyPlanEntry
from .utils import (
    calculate_sha256,
    ensure_directory,
    format_bytes,
    get_available_space,
    get_file_size,
)

logger = logging.getLogger(__name__)


class CopyError(Exception):
    """A file of the plan could not be copied."""


class InsufficientSpaceError(Exception):
    """The destination does not have room for the plan."""


class PlanExecutor:
    """Copies the files of a validated plan, or prints them in a dry run."""

    def __init__(self, config: Config):
        self.config = config
        self.min_free_space_bytes = config.get_min_free_space_gb() * 1024 * 1024 * 1024
        self.verify = config.should_verify_copies()

    def execute(
        self,
        plan: List[CopyPlanEntry],
        dry_run: Optional[bool] = None,
        echo: Optional[Callable[[str], None]] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        show_progress: bool = False,
    ) -> Dict[str, Any]:
        """
        Copy every entry of a plan.

        Execution stops at the first failure; files copied before it stay in
        place.

        Args:
            plan: Validated copy plan
            dry_run: Only report what would be copied (defaults to config setting)
            echo: Receives one line per entry in a dry run
            progress_callback: Called with (done, total) after each entry
            show_progress: Whether to display a progress bar

        Returns:
            Dictionary with copy results

        Raises:
            InsufficientSpaceError: If the destination lacks free space
            CopyError: If a file cannot be copied or verified
        """
        if dry_run is None:
            dry_run = self.config.is_dry_run()

        total = len(plan)
        total_size = sum(get_file_size(entry.source) for entry in plan)
        results: Dict[str, Any] = {
            'dry_run': dry_run,
            'total_files': total,
            'copied_files': 0,
            'copied_size': 0,
        }

        if total == 0:
            logger.info("No files to copy")
            return results

        if not dry_run:
            self._check_space(plan[0].destination, total_size)

        with tqdm(plan, desc="Copying files", unit="files",
                  disable=dry_run or not show_progress) as pbar:
            for i, entry in enumerate(pbar, 1):
                if dry_run:
                    line = f"Would copy {entry.source} to {entry.destination}"
                    logger.debug(f"DRY RUN: {line}")
                    if echo:
                        echo(line)
                else:
                    self._copy_one(entry)
                results['copied_files'] += 1
                results['copied_size'] += get_file_size(entry.source)

                if progress_callback:
                    progress_callback(i, total)

        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Copy complete: "
            f"{results['copied_files']:,} files, {format_bytes(results['copied_size'])}"
        )
        return results

    def _check_space(self, destination: Path, needed_bytes: int):
        available = get_available_space(destination)
        needed = needed_bytes + self.min_free_space_bytes
        if needed > available:
            raise InsufficientSpaceError(
                f"Insufficient space: need {format_bytes(needed)}, have {format_bytes(available)}"
            )
        logger.info(f"Space check OK: need {format_bytes(needed)}, have {format_bytes(available)}")

    def _copy_one(self, entry: CopyPlanEntry):
        source, destination = entry.source, entry.destination

        if not ensure_directory(destination.parent):
            raise CopyError(f"Failed to create directory {destination.parent}")

        try:
            shutil.copy2(source, destination)
        except OSError as e:
            raise CopyError(f"Failed to copy {source} -> {destination}: {e}") from e

        if self.verify:
            src_hash = calculate_sha256(source)
            dst_hash = calculate_sha256(destination)
            if not src_hash or src_hash != dst_hash:
                raise CopyError(f"Hash verification failed for {source} -> {destination}")

        logger.debug(f"Copied {source} -> {destination}")
