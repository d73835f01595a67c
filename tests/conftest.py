"""Test configuration and fixtures."""

import sys
from datetime import datetime, timezone

import pytest

from hostprocess_image.config import BuildConfig
from tests.helpers import FakeHiveCreator

FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


@pytest.fixture
def license_files(tmp_path):
    """Two license files outside the build directory."""
    source_dir = tmp_path / "source"
    source_dir.mkdir()
    license_file = source_dir / "LICENSE"
    license_file.write_text("Apache License\nVersion 2.0\n")
    notice_file = source_dir / "NOTICE"
    notice_file.write_text("Third party notices\n")
    return [license_file, notice_file]


@pytest.fixture
def build_config(tmp_path, license_files):
    """Build configuration rooted in a temporary directory."""
    return BuildConfig(build_dir=tmp_path / "build", license_files=license_files)


@pytest.fixture
def hive_creator():
    return FakeHiveCreator()


@pytest.fixture
def fixed_time():
    return FIXED_TIME


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")
    config.addinivalue_line(
        "markers", "windows: requires reg.exe and administrator privileges"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests that need a Windows host."""
    skip_windows = pytest.mark.skip(reason="Requires Windows with reg.exe")

    for item in items:
        if "windows" in item.keywords and sys.platform != "win32":
            item.add_marker(skip_windows)
