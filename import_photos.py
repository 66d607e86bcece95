#!/usr/bin/env python3
"""
Photo Import CLI

Copies photos into a RAW/JPEG tree partitioned by capture date, grouping
burst and HDR sequences into their own folders. Every file is validated
before anything is copied.
"""

import sys
import logging
import click
from pathlib import Path
from colorama import init, Fore, Style

from photo_importer import (
    Config,
    CopyError,
    ImportReporter,
    InsufficientSpaceError,
    MetadataToolMissingError,
    PhotoImporter,
    PlanValidationError,
)

# Initialize colorama for cross-platform colored output
init()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Handlers installed by setup_logging, replaced on each call
_handlers = []


def setup_logging(level: str = 'INFO', log_dir: Path = None):
    """Set up logging configuration."""
    root_logger = logging.getLogger()
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger.setLevel(numeric_level)
    root_logger.addHandler(console_handler)
    _handlers.append(console_handler)

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / 'photo_import.log')
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _handlers.append(file_handler)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")
    sys.stdout.flush()

def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


@click.command()
@click.argument('input_dir', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument('output_dir', type=click.Path(file_okay=False, path_type=Path))
@click.option('--dry-run', is_flag=True, help='Print actions without copying files')
@click.option('--incremental', is_flag=True,
              help='Only process files newer than the most recent file in the destination directory')
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--log-level', '-l', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level (overrides config)')
@click.option('--report', '-r', help='Save a JSON report to this file')
@click.option('--progress/--no-progress', default=True, help='Show progress bars')
def cli(input_dir, output_dir, dry_run, incremental, config, log_level, report, progress):
    """Photo Import Tool - copy INPUT_DIR into a dated OUTPUT_DIR tree."""

    try:
        config_obj = Config(config)
    except Exception as e:
        setup_logging(log_level or 'INFO')
        print_error(f"Failed to load configuration: {e}")
        sys.exit(1)

    log_dir = config_obj.get_log_dir()
    setup_logging(log_level or config_obj.get_log_level(), Path(log_dir) if log_dir else None)

    errors = config_obj.validate_config()
    if errors:
        print_error("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)

    importer = PhotoImporter(config_obj, show_progress=progress)

    try:
        version = importer.reader.check_installed()
    except MetadataToolMissingError as e:
        print_error(str(e))
        sys.exit(1)
    print_info(f"Found exiftool version: {version}")

    print_header("PHOTO IMPORT")
    if incremental:
        print_info("Incremental mode enabled. Scanning destination directory for most recent file...")

    try:
        results = importer.run(input_dir, output_dir, dry_run or None, incremental, echo=click.echo)
    except PlanValidationError as e:
        print_error(f"Validation failed! Found {len(e.errors)} problematic files:")
        for error in e.errors:
            click.echo(f"  {error.source_path} - {error.reason}")
        click.echo("\nPlease fix these issues before proceeding.")
        sys.exit(1)
    except (CopyError, InsufficientSpaceError) as e:
        print_error(f"Copy failed: {e}")
        sys.exit(1)

    if incremental:
        if results['cutoff']:
            print_info(f"Only processed files newer than: {results['cutoff']}")
        else:
            print_warning("No existing files found in destination. Processed all files.")

    stats = results['statistics']
    if stats['files_planned'] == 0:
        print_success("Validation successful! No files to process.")
    else:
        print_success(f"Validation successful! {stats['files_planned']:,} files ready to copy.")
        if results['dry_run']:
            print_info("DRY RUN completed - no files were actually copied")
        else:
            print_success(f"Copy complete: {results['copy']['copied_files']:,} files copied")

    reporter = ImportReporter(config_obj)
    click.echo("\n" + reporter.generate_summary_report(results))

    if report:
        report_file = reporter.save_report(results, report)
        print_success(f"Report saved: {report_file}")

    sys.stdout.flush()


if __name__ == '__main__':
    cli()
