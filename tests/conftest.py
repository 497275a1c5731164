"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path
from unittest.mock import Mock

from tunewrangler.config.settings import (
    AnalysisConfig,
    ConversionConfig,
    LoggingConfig,
    PathsConfig,
    ProcessingConfig,
)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def mock_settings(temp_dir):
    """Mock settings whose library folders all live in the temp directory"""
    settings = Mock()
    settings.paths = PathsConfig()
    settings.processing = ProcessingConfig()
    settings.conversion = ConversionConfig()
    settings.analysis = AnalysisConfig()
    settings.logging = LoggingConfig()

    def get_path(name):
        path = temp_dir / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    settings.get_path.side_effect = get_path
    settings.validate.return_value = True
    settings.validate_paths.return_value = (True, [])
    return settings


def make_files(directory: Path, *names: str) -> Path:
    """Create empty files in a directory"""
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_bytes(b"")
    return directory


@pytest.fixture
def file_maker():
    """Expose make_files to test modules"""
    return make_files


@pytest.fixture
def music_dir(temp_dir):
    """Collection folder with a few already renamed songs"""
    return make_files(
        temp_dir / "collection",
        "Flume - Never Be Like You.mp3",
        "Flume x Chet Faker - Drop the Game.mp3",
        "Flume - Skin - Say It.flac",
        "Odesza - A Moment Apart.aiff",
        "Odesza x Flume - Collab Track.wav",
        ".DS_Store",
        "cover.jpg",
    )
