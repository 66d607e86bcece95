"""End-to-end photo import: scan, sequence, plan and copy."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .classifier import RAW_TREE
from .config import Config
from .executor import PlanExecutor
from .grouper import base_key, collect_files, group_files_by_base
from .incremental import find_most_recent_photo
from .metadata import ExifToolReader, MetadataReader, cache_metadata, resolve_units
from .planner import plan_copies
from .sequences import count_sequences, detect_sequences
from .utils import get_current_timestamp

logger = logging.getLogger(__name__)


class PhotoImporter:
    """Imports photos from an input directory into a dated destination tree."""

    def __init__(
        self,
        config: Config,
        reader: Optional[MetadataReader] = None,
        show_progress: bool = False,
    ):
        """
        Initialize importer with configuration.

        Args:
            config: Configuration instance
            reader: Metadata reader, defaults to an ExifToolReader built from config
            show_progress: Whether to display progress bars
        """
        self.config = config
        self.reader = reader or ExifToolReader(
            config.get_exiftool_path(), config.get_metadata_timeout()
        )
        self.show_progress = show_progress
        self.executor = PlanExecutor(config)

    def find_cutoff(self, output_dir: Path) -> Optional[datetime]:
        """Get the date of the newest photo already imported into output_dir."""
        return find_most_recent_photo(output_dir, self.reader)

    def run(
        self,
        input_dir: Path,
        output_dir: Path,
        dry_run: Optional[bool] = None,
        incremental: bool = False,
        echo: Optional[Callable[[str], None]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Import every photo unit found under input_dir.

        Args:
            input_dir: Directory to import from
            output_dir: Destination root
            dry_run: Only report what would be copied (defaults to config setting)
            incremental: Skip photos not newer than the newest one in output_dir
            echo: Receives dry-run output lines
            now: Sort position for photos without a capture date

        Returns:
            Dictionary with import results

        Raises:
            PlanValidationError: If any file failed validation; nothing is copied
            CopyError: If copying fails part way
            InsufficientSpaceError: If the destination lacks free space
        """
        if dry_run is None:
            dry_run = self.config.is_dry_run()
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)

        logger.info(f"{'DRY RUN: ' if dry_run else ''}Importing {input_dir} -> {output_dir}")

        cutoff = None
        if incremental:
            cutoff = self.find_cutoff(output_dir)
            if cutoff is None:
                logger.info("No existing files found in destination, processing all files")

        units = group_files_by_base(collect_files(input_dir))
        cache = cache_metadata(
            units, self.reader, self.config.get_parallel_jobs(), self.show_progress
        )
        sequences = detect_sequences(resolve_units(units.values(), cache, now))

        plan = plan_copies(units, cache, sequences, output_dir, cutoff, self.show_progress)
        copy_results = self.executor.execute(
            plan, dry_run, echo=echo, show_progress=self.show_progress
        )

        raw_root = output_dir.absolute() / RAW_TREE
        raw_files = sum(1 for entry in plan if raw_root in entry.destination.parents)
        sequence_counts = count_sequences(sequences)

        return {
            'dry_run': dry_run,
            'incremental': incremental,
            'timestamp': get_current_timestamp(),
            'cutoff': cutoff.isoformat() if cutoff else None,
            'paths': {
                'input_dir': str(input_dir),
                'output_dir': str(output_dir),
            },
            'statistics': {
                'units': len(units),
                'units_with_metadata': len(cache),
                'files_planned': len(plan),
                'raw_files': raw_files,
                'jpeg_files': len(plan) - raw_files,
                'hdr_sequences': sequence_counts['HDR'],
                'burst_sequences': sequence_counts['BURST'],
                'files_in_sequences': sum(
                    1 for entry in plan if base_key(entry.source.name) in sequences
                ),
            },
            'copy': copy_results,
            'plan': [
                {'source': str(entry.source), 'destination': str(entry.destination)}
                for entry in plan
            ],
        }
