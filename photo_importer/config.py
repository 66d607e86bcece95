"""Configuration management for photo importing."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'photo_import': {
        'metadata': {
            'exiftool': 'exiftool',
            'timeout_seconds': 30,
        },
        'process': {
            'parallel_jobs': 4,
            'dry_run': False,
            'verify_copies': True,
        },
        'safety': {
            'min_free_space_gb': 1,
        },
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Manages configuration for photo importing from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches for config
                files and falls back to built-in defaults.
        """
        self.config_path = config_path or self._find_config_file()
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        # Look for config files in order of preference
        possible_paths = [
            "config.local.yml",
            "config.yml",
            "../config.local.yml",
            "../config.yml",
        ]

        for path in possible_paths:
            config_file = Path(__file__).parent / path
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return str(config_file.resolve())

        logger.debug("No configuration file found, using defaults")
        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file over the defaults."""
        if self.config_path is None:
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")
        self.config = _merge(DEFAULT_CONFIG, loaded)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'photo_import.process.parallel_jobs'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def get_exiftool_path(self) -> str:
        """Get the exiftool executable to run."""
        return self.get('photo_import.metadata.exiftool', 'exiftool')

    def get_metadata_timeout(self) -> float:
        """Get the timeout in seconds for one exiftool call."""
        return self.get('photo_import.metadata.timeout_seconds', 30)

    def get_parallel_jobs(self) -> int:
        """Get number of parallel metadata reads."""
        return self.get('photo_import.process.parallel_jobs', 4)

    def get_min_free_space_gb(self) -> int:
        """Get minimum free space to leave on the destination in GB."""
        return self.get('photo_import.safety.min_free_space_gb', 1)

    def should_verify_copies(self) -> bool:
        """Check if copies should be verified with a hash comparison."""
        return self.get('photo_import.process.verify_copies', True)

    def is_dry_run(self) -> bool:
        """Check if this is a dry run."""
        return self.get('photo_import.process.dry_run', False)

    def get_log_level(self) -> str:
        """Get logging level."""
        return self.get('logging.level', 'INFO')

    def get_log_dir(self) -> Optional[str]:
        """Get directory for log files, None for console only."""
        return self.get('logging.log_dir')

    def validate_config(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages
        """
        errors = []

        if not self.get_exiftool_path():
            errors.append("exiftool executable not configured")

        timeout = self.get_metadata_timeout()
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            errors.append(f"Invalid timeout_seconds value: {timeout} (must be positive)")

        parallel_jobs = self.get_parallel_jobs()
        if not isinstance(parallel_jobs, int) or parallel_jobs < 1 or parallel_jobs > 32:
            errors.append(f"Invalid parallel_jobs value: {parallel_jobs} (must be 1-32)")

        min_free = self.get_min_free_space_gb()
        if not isinstance(min_free, (int, float)) or min_free < 0:
            errors.append(f"Invalid min_free_space_gb value: {min_free} (must be >= 0)")

        return errors

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path}, jobs={self.get_parallel_jobs()})"
