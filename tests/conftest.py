"""Shared fixtures for photo import tests."""

import os
from datetime import datetime, timezone

import pytest
import yaml

from photo_importer.metadata import MetadataReadError


class FakeReader:
    """Metadata reader returning canned maps keyed by filename."""

    def __init__(self, metadata_by_name=None):
        self.metadata_by_name = dict(metadata_by_name or {})
        self.calls = []

    def read(self, file_path):
        self.calls.append(file_path)
        metadata = self.metadata_by_name.get(file_path.name)
        if metadata is None:
            raise MetadataReadError(f"no metadata for {file_path}")
        return metadata

    def check_installed(self):
        return "12.76"


@pytest.fixture
def sample_config(tmp_path):
    """Create a Config backed by a temp config file."""
    config_data = {
        'photo_import': {
            'metadata': {
                'exiftool': 'exiftool',
                'timeout_seconds': 10,
            },
            'process': {
                'parallel_jobs': 2,
                'dry_run': False,
                'verify_copies': True,
            },
            'safety': {
                'min_free_space_gb': 0,
            },
        },
        'logging': {
            'level': 'INFO',
            'log_dir': str(tmp_path / 'logs'),
        },
    }

    config_path = tmp_path / 'config.yml'
    with open(config_path, 'w') as f:
        yaml.dump(config_data, f)

    from photo_importer.config import Config
    return Config(str(config_path))


@pytest.fixture
def input_dir(tmp_path):
    path = tmp_path / 'input'
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / 'output'


@pytest.fixture
def photo_tree(input_dir):
    """Factory fixture: create a file under the input directory."""

    def _create(relative_path, content=b'photo-data', mtime=None):
        full_path = input_dir / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)
        if mtime is not None:
            stamp = mtime.timestamp()
            os.utime(full_path, (stamp, stamp))
        return full_path

    return _create


@pytest.fixture
def make_exif():
    """Factory fixture: build an exiftool-style metadata map."""

    def _make(date=None, burst=None, hdr=None):
        metadata = {'SourceFile': 'test', 'Make': 'OM Digital Solutions'}
        if date is not None:
            metadata['DateTimeOriginal'] = date
        if burst is not None:
            metadata['SpecialMode'] = f"Fast, Sequence: {burst}, Panorama: (none)"
        if hdr is not None:
            metadata['DriveMode'] = (
                f"AE Auto Bracketing, Shot {hdr}; Electronic shutter"
            )
        return metadata

    return _make


@pytest.fixture
def fake_reader():
    return FakeReader


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def at():
    """Build aware UTC datetimes."""
    return utc
