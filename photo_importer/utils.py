"""Utility functions for photo importing."""

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import psutil

logger = logging.getLogger(__name__)


def calculate_sha256(file_path: Path, chunk_size: int = 8192) -> str:
    """
    Calculate SHA256 hash of a file.
    
    Args:
        file_path: Path to file
        chunk_size: Size of chunks to read at a time
        
    Returns:
        SHA256 hash as hexadecimal string, empty string on error
    """
    hasher = hashlib.sha256()
    try:
        with open(file_path, 'rb') as f:
            while chunk := f.read(chunk_size):
                hasher.update(chunk)
        return hasher.hexdigest()
    except OSError as e:
        logger.error(f"Failed to calculate hash for {file_path}: {e}")
        return ""


def get_file_size(file_path: Path) -> int:
    """
    Get file size in bytes.
    
    Args:
        file_path: Path to file
        
    Returns:
        File size in bytes, 0 if error
    """
    try:
        return file_path.stat().st_size
    except OSError as e:
        logger.error(f"Failed to get size for {file_path}: {e}")
        return 0


def get_file_mtime(file_path: Path) -> Optional[datetime]:
    """
    Get the modification time of a file as a UTC datetime.

    Args:
        file_path: Path to file

    Returns:
        Aware UTC datetime, or None if the file cannot be read
    """
    try:
        return datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        logger.debug(f"Cannot read modification time of {file_path}: {e}")
        return None


def format_bytes(bytes_value: int) -> str:
    """
    Format bytes as human-readable string.
    
    Args:
        bytes_value: Size in bytes
        
    Returns:
        Formatted string like "1.2GB"
    """
    if bytes_value == 0:
        return "0B"
    
    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_value)
    
    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1
    
    return f"{size:.1f}{units[unit_index]}"


def get_available_space(path: Path) -> int:
    """
    Get available disk space for a path in bytes.

    The nearest existing ancestor is checked, since the destination tree
    may not exist yet.

    Args:
        path: Path to check
        
    Returns:
        Available space in bytes
    """
    probe = Path(path)
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent

    try:
        usage = psutil.disk_usage(str(probe))
        return usage.free
    except OSError as e:
        logger.error(f"Failed to get disk space for {path}: {e}")
        return 0


def ensure_directory(path: Path) -> bool:
    """
    Ensure directory exists, creating it if necessary.
    
    Args:
        path: Directory path to ensure
        
    Returns:
        True if directory exists or was created successfully
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def get_current_timestamp():
    """Get current timestamp as ISO string."""
    return datetime.now().isoformat()
