"""Grouping of input files into photo units by shared base name."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .classifier import is_photo, is_photo_jpeg, is_raw

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unit:
    """One logical photo: the primary file(s) plus any sidecars."""
    key: str
    files: Tuple[Path, ...]

    @property
    def photo_files(self) -> List[Path]:
        """Raw and JPEG files of the unit, in lexical order."""
        return [f for f in self.files if is_photo(f.name)]

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_files)

    @property
    def representative(self) -> Optional[Path]:
        """
        Get the file used to source capture metadata.

        The first JPEG is preferred, then the first raw file. Files are kept
        in lexical order so the choice does not depend on directory listing
        order.
        """
        for file_path in self.files:
            if is_photo_jpeg(file_path.name):
                return file_path
        for file_path in self.files:
            if is_raw(file_path.name):
                return file_path
        return None


def base_key(filename: str) -> str:
    """Get the unit key of a filename: everything before the first dot."""
    return filename.split('.', 1)[0]


def collect_files(directory: Path) -> List[Path]:
    """
    Recursively collect all regular files under a directory.

    Args:
        directory: Input root

    Returns:
        Sorted list of file paths
    """
    directory = Path(directory)
    if not directory.exists() or not directory.is_dir():
        logger.warning(f"Directory does not exist or is not a directory: {directory}")
        return []

    files = [path for path in directory.rglob('*') if path.is_file() and not path.is_symlink()]
    files.sort()
    logger.info(f"Found {len(files):,} files in {directory}")
    return files


def group_files_by_base(paths: Iterable[Path]) -> Dict[str, Unit]:
    """
    Partition file paths into units keyed by base filename.

    Args:
        paths: File paths to group

    Returns:
        Mapping from unit key to Unit
    """
    grouped: Dict[str, List[Path]] = {}
    for path in paths:
        path = Path(path)
        grouped.setdefault(base_key(path.name), []).append(path)

    units = {
        key: Unit(key=key, files=tuple(sorted(set(files))))
        for key, files in grouped.items()
    }
    logger.debug(f"Grouped files into {len(units):,} units")
    return units
