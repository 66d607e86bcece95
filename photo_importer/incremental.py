"""Discovery of the newest photo already in a destination tree."""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .classifier import JPEG_TREE, RAW_TREE, is_photo
from .metadata import MetadataReader, MetadataReadError, get_capture_time
from .utils import get_file_mtime

logger = logging.getLogger(__name__)


def _numbered_subdirs(directory: Path) -> List[Tuple[int, Path]]:
    """Get subdirectories with numeric names, highest number first."""
    entries = []
    for path in directory.iterdir():
        if path.is_dir() and path.name.isascii() and path.name.isdigit():
            entries.append((int(path.name), path))
    entries.sort(key=lambda item: item[0], reverse=True)
    return entries


def _photo_date(file_path: Path, reader: Optional[MetadataReader]) -> Optional[datetime]:
    if reader is not None:
        try:
            date = get_capture_time(reader.read(file_path))
        except MetadataReadError as e:
            logger.debug(f"Could not read metadata for {file_path}: {e}")
        else:
            if date is not None:
                return date
    return get_file_mtime(file_path)


def _newest_in_day(day_dir: Path, reader: Optional[MetadataReader]) -> Tuple[Optional[datetime], int]:
    newest = None
    checked = 0
    for file_path in day_dir.rglob('*'):
        if not file_path.is_file() or not is_photo(file_path.name):
            continue
        checked += 1
        date = _photo_date(file_path, reader)
        if date is not None and (newest is None or date > newest):
            newest = date
    return newest, checked


def _newest_in_tree(tree_dir: Path, reader: Optional[MetadataReader]) -> Tuple[Optional[datetime], int]:
    checked = 0
    for _, year_dir in _numbered_subdirs(tree_dir):
        for _, month_dir in _numbered_subdirs(year_dir):
            for _, day_dir in _numbered_subdirs(month_dir):
                newest, day_checked = _newest_in_day(day_dir, reader)
                checked += day_checked
                if newest is not None:
                    return newest, checked
    return None, checked


def find_most_recent_photo(
    output_dir: Path, reader: Optional[MetadataReader] = None
) -> Optional[datetime]:
    """
    Find the capture time of the newest photo in a destination tree.

    The RAW and JPEG trees are walked from the latest year/month/day folder
    backwards; the first day folder holding photos decides each tree. Photos
    are dated by metadata, falling back to modification time.

    Args:
        output_dir: Destination root
        reader: Metadata reader, or None to use modification times only

    Returns:
        Newest date found, or None if the tree holds no photos
    """
    output_dir = Path(output_dir)
    most_recent = None
    files_checked = 0

    for tree in (RAW_TREE, JPEG_TREE):
        tree_dir = output_dir / tree
        if not tree_dir.is_dir():
            continue
        newest, checked = _newest_in_tree(tree_dir, reader)
        files_checked += checked
        if newest is not None and (most_recent is None or newest > most_recent):
            most_recent = newest

    if files_checked:
        logger.info(f"Scanned {files_checked:,} files in destination directory")
    if most_recent is not None:
        logger.info(f"Most recent file found: {most_recent:%Y-%m-%d %H:%M:%S} UTC")
    else:
        logger.info("No photo files found in destination directory")
    return most_recent
