"""
Shared fixtures: synthetic rides in both recording formats.
"""

from datetime import datetime, timezone

import pytest

from trackheat.services import repository
from trackheat.utils.sample_data import (
    build_fit_bytes,
    build_gpx_text,
    generate_loop_track,
    generate_test_data_set,
)


@pytest.fixture
def loop_points():
    """240-point loop around Beijing with timestamps and elevation."""
    return generate_loop_track()


@pytest.fixture
def fit_bytes(loop_points):
    return build_fit_bytes(loop_points)


@pytest.fixture
def gpx_text(loop_points):
    return build_gpx_text(loop_points)


@pytest.fixture
def data_folder(tmp_path):
    """Folder with two FIT rides and one GPX ride."""
    folder = tmp_path / "tracks"
    generate_test_data_set(folder)
    return folder


@pytest.fixture
def ride_start():
    return datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_repository():
    """Every test starts without a global repository."""
    repository._repository = None
    yield
    repository._repository = None
