"""Capture metadata resolution through exiftool."""

import json
import logging
import re
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from tqdm import tqdm

from .grouper import Unit

logger = logging.getLogger(__name__)

EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'
MIN_VALID_YEAR = 1990
MAX_VALID_YEAR = 2050

BURST_PATTERN = re.compile(r'Sequence:\s*(\d+)')
HDR_SHOT_PATTERN = re.compile(r'Shot\s+(\d+)')
AUTO_BRACKETING_MARKER = 'AE Auto Bracketing'
ELECTRONIC_SHUTTER_MARKER = 'Electronic shutter'

EXIFTOOL_INSTALL_HINT = """Please install exiftool to use this program:
- On Ubuntu/Debian: sudo apt install libimage-exiftool-perl
- On macOS: brew install exiftool
- On other systems: https://exiftool.org/install.html"""

MetadataCache = Dict[str, Tuple[Path, Dict[str, Any]]]


class MetadataReadError(Exception):
    """Metadata could not be read for a single file."""


class MetadataToolMissingError(Exception):
    """The external metadata tool is not available."""


@runtime_checkable
class MetadataReader(Protocol):
    """Anything that returns the metadata map of one file."""

    def read(self, file_path: Path) -> Dict[str, Any]:
        """Read metadata, raising MetadataReadError on failure."""
        ...


class ExifToolReader:
    """Reads file metadata by running exiftool in a subprocess."""

    def __init__(self, executable: str = 'exiftool', timeout: float = 30):
        self.executable = executable
        self.timeout = timeout

    def check_installed(self) -> str:
        """
        Check that exiftool can be executed.

        Returns:
            The exiftool version string

        Raises:
            MetadataToolMissingError: If exiftool is missing or broken
        """
        try:
            result = subprocess.run(
                [self.executable, '-ver'],
                capture_output=True, text=True, timeout=self.timeout
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise MetadataToolMissingError(
                f"exiftool is not installed or not found in PATH.\n\n{EXIFTOOL_INSTALL_HINT}"
            ) from e

        if result.returncode != 0:
            raise MetadataToolMissingError("exiftool command failed to execute properly")

        version = result.stdout.strip()
        logger.info(f"Found exiftool version: {version}")
        return version

    def read(self, file_path: Path) -> Dict[str, Any]:
        """
        Read all metadata fields of a file.

        Args:
            file_path: File to inspect

        Returns:
            Mapping from exiftool field name to value

        Raises:
            MetadataReadError: If exiftool fails or its output is unusable
        """
        try:
            result = subprocess.run(
                [self.executable, '-j', str(file_path)],
                capture_output=True, timeout=self.timeout
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise MetadataReadError(f"exiftool failed for {file_path}: {e}") from e

        try:
            records = json.loads(result.stdout)
        except ValueError as e:
            raise MetadataReadError(f"Unreadable exiftool output for {file_path}: {e}") from e

        if not isinstance(records, list) or not records or not isinstance(records[0], dict):
            raise MetadataReadError(f"No metadata returned for {file_path}")
        return records[0]


@dataclass(frozen=True)
class ResolvedUnit:
    """Sequencing attributes of a unit, derived from its metadata."""
    unit_key: str
    capture_time: datetime
    burst_ordinal: int = 0
    hdr_shot_ordinal: Optional[int] = None


def get_capture_time(metadata: Dict[str, Any]) -> Optional[datetime]:
    """
    Get the capture time from DateTimeOriginal.

    Args:
        metadata: Metadata mapping of one file

    Returns:
        Aware UTC datetime, or None if the field is missing, malformed or
        outside the accepted year range
    """
    value = metadata.get('DateTimeOriginal')
    if not isinstance(value, str):
        return None

    try:
        parsed = datetime.strptime(value.strip(), EXIF_DATE_FORMAT)
    except ValueError:
        return None

    if not MIN_VALID_YEAR <= parsed.year <= MAX_VALID_YEAR:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def _search_ordinal(pattern, text: str) -> Optional[int]:
    match = pattern.search(text)
    if match is None:
        return None
    return int(match.group(1))


def get_burst_ordinal(metadata: Dict[str, Any]) -> int:
    """Get the burst position from SpecialMode, 0 when not in a burst."""
    special_mode = metadata.get('SpecialMode')
    if not isinstance(special_mode, str):
        return 0
    return _search_ordinal(BURST_PATTERN, special_mode) or 0


def get_hdr_shot_ordinal(metadata: Dict[str, Any]) -> Optional[int]:
    """Get the bracket shot number from DriveMode, None when not bracketed."""
    drive_mode = metadata.get('DriveMode')
    if not isinstance(drive_mode, str):
        return None
    if AUTO_BRACKETING_MARKER not in drive_mode or ELECTRONIC_SHUTTER_MARKER not in drive_mode:
        return None
    return _search_ordinal(HDR_SHOT_PATTERN, drive_mode)


def _read_representative(reader: MetadataReader, key: str, path: Path):
    try:
        return key, path, reader.read(path)
    except MetadataReadError as e:
        logger.debug(f"Could not read metadata for {path}: {e}")
        return key, path, None


def cache_metadata(
    units: Dict[str, Unit],
    reader: MetadataReader,
    parallel_jobs: int = 4,
    show_progress: bool = False,
) -> MetadataCache:
    """
    Read the metadata of every unit's representative photo.

    Units without photo files are skipped. Units whose metadata cannot be
    read are left out of the cache; they fall back to filesystem time.

    Args:
        units: Units keyed by base name
        reader: Metadata reader, e.g. an ExifToolReader
        parallel_jobs: Number of worker threads
        show_progress: Whether to display a progress bar

    Returns:
        Mapping from unit key to (representative path, metadata)
    """
    representatives = [
        (key, unit.representative)
        for key, unit in units.items()
        if unit.representative is not None
    ]
    cache: MetadataCache = {}
    if not representatives:
        return cache

    logger.info(f"Reading metadata for {len(representatives):,} photos with {parallel_jobs} workers")

    with ThreadPoolExecutor(max_workers=max(1, parallel_jobs)) as executor:
        futures = [
            executor.submit(_read_representative, reader, key, path)
            for key, path in representatives
        ]
        with tqdm(total=len(futures), desc="Caching metadata", unit="files",
                  disable=not show_progress) as pbar:
            for future in as_completed(futures):
                key, path, metadata = future.result()
                if metadata is not None:
                    cache[key] = (path, metadata)
                pbar.update()

    failed = len(representatives) - len(cache)
    if failed:
        logger.warning(f"Metadata unavailable for {failed:,} photos, using file modification time")
    return cache


def resolve_units(
    units: Iterable[Unit],
    cache: MetadataCache,
    now: Optional[datetime] = None,
) -> List[ResolvedUnit]:
    """
    Derive sequencing attributes for every unit with cached metadata.

    A unit whose metadata has no usable capture time is placed at ``now``,
    so it sorts after every dated photo.

    Args:
        units: Units to resolve
        cache: Metadata cache from cache_metadata
        now: Sort position for undated units, defaults to the current time

    Returns:
        Resolved units, in no particular order
    """
    if now is None:
        now = datetime.now(timezone.utc)

    resolved = []
    for unit in units:
        if not unit.has_photo or unit.key not in cache:
            continue
        _, metadata = cache[unit.key]
        resolved.append(ResolvedUnit(
            unit_key=unit.key,
            capture_time=get_capture_time(metadata) or now,
            burst_ordinal=get_burst_ordinal(metadata),
            hdr_shot_ordinal=get_hdr_shot_ordinal(metadata),
        ))
    return resolved
