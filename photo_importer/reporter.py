"""Reporting and statistics for photo imports."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .utils import ensure_directory, format_bytes

logger = logging.getLogger(__name__)


class ImportReporter:
    """Generates reports and statistics for photo imports."""

    def __init__(self, config):
        """Initialize reporter with configuration."""
        self.config = config

    def generate_summary_report(self, results: Dict[str, Any]) -> str:
        """
        Generate human-readable summary report.

        Args:
            results: Results from PhotoImporter.run

        Returns:
            Formatted summary report
        """
        stats = results.get('statistics', {})
        paths = results.get('paths', {})
        copy_results = results.get('copy', {})

        report = []
        report.append("=" * 50)
        report.append("PHOTO IMPORT SUMMARY REPORT")
        report.append("=" * 50)
        report.append(f"Completed: {results.get('timestamp', 'Unknown')}")
        report.append(f"Mode: {'DRY RUN' if results.get('dry_run', False) else 'LIVE RUN'}")
        report.append(f"Source: {paths.get('input_dir', 'N/A')}")
        report.append(f"Target: {paths.get('output_dir', 'N/A')}")
        if results.get('incremental'):
            report.append(f"Incremental cutoff: {results.get('cutoff') or 'none (empty destination)'}")
        report.append("")

        report.append("=== FILE STATISTICS ===")
        report.append(f"• Photo units found: {stats.get('units', 0):,}")
        report.append(f"• Units with metadata: {stats.get('units_with_metadata', 0):,}")
        report.append(f"• Files planned: {stats.get('files_planned', 0):,}")
        report.append(f"• RAW tree: {stats.get('raw_files', 0):,} files")
        report.append(f"• JPEG tree: {stats.get('jpeg_files', 0):,} files")
        copied_label = "Files that would be copied" if results.get('dry_run') else "Files copied"
        report.append(f"• {copied_label}: {copy_results.get('copied_files', 0):,} "
                      f"({format_bytes(copy_results.get('copied_size', 0))})")
        report.append("")

        report.append("=== SEQUENCES ===")
        report.append(f"• HDR sequences: {stats.get('hdr_sequences', 0):,}")
        report.append(f"• Burst sequences: {stats.get('burst_sequences', 0):,}")
        report.append(f"• Files in sequence folders: {stats.get('files_in_sequences', 0):,}")
        report.append("")

        return "\n".join(report)

    def save_report(self, results: Dict[str, Any], report_file: Optional[str] = None) -> str:
        """
        Save results as a JSON report.

        Args:
            results: Results from PhotoImporter.run
            report_file: Target path, defaults to the configured log directory

        Returns:
            Path of the written report
        """
        if report_file:
            report_path = Path(report_file)
        else:
            log_dir = Path(self.config.get_log_dir() or '.')
            stamp = str(results.get('timestamp', 'unknown')).replace(':', '-')
            report_path = log_dir / f"photo_import_{stamp}.json"

        ensure_directory(report_path.parent)
        with open(report_path, 'w') as f:
            json.dump(results, f, indent=2)

        logger.info(f"Import report saved: {report_path}")
        return str(report_path)
