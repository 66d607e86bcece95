"""
Photo Import Tool

Copies photos from a card or folder into a RAW/JPEG tree partitioned by
capture date, keeping burst and HDR sequences together in their own folders.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config
from .executor import CopyError, InsufficientSpaceError, PlanExecutor
from .importer import PhotoImporter
from .metadata import (
    ExifToolReader,
    MetadataReader,
    MetadataReadError,
    MetadataToolMissingError,
)
from .planner import CopyPlanEntry, PlanValidationError, ValidationError
from .reporter import ImportReporter
from .sequences import SequenceKind, SequenceTag

__all__ = [
    'Config',
    'CopyError',
    'CopyPlanEntry',
    'ExifToolReader',
    'ImportReporter',
    'InsufficientSpaceError',
    'MetadataReader',
    'MetadataReadError',
    'MetadataToolMissingError',
    'PhotoImporter',
    'PlanExecutor',
    'PlanValidationError',
    'SequenceKind',
    'SequenceTag',
    'ValidationError',
]
