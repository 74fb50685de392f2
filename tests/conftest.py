"""
Pytest configuration and shared fixtures
"""

import os

import pytest

from forkmr.utils.config import Settings
from forkmr.utils.logger import setup_logger
from forkmr.utils.metrics import MetricsCollector

setup_logger()


@pytest.fixture
def work_dir(tmp_path):
    """Directory receiving intermediate and result files"""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture(params=["process", "thread"])
def backend(request):
    """Run a test once per worker backend"""
    return request.param


@pytest.fixture
def settings(work_dir, backend):
    """Engine settings rooted in the test's work directory"""
    return Settings(work_dir=str(work_dir), worker_backend=backend, worker_timeout_seconds=30)


@pytest.fixture
def process_settings(work_dir):
    """Settings pinned to the process backend"""
    return Settings(work_dir=str(work_dir), worker_backend="process", worker_timeout_seconds=30)


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def sample_text():
    """Sample text for testing"""
    return (
        "The quick brown fox jumps over the lazy dog.\n"
        "The dog was really lazy.\n"
        "The fox was very quick and brown.\n"
        "Quick brown foxes are amazing animals.\n"
        "Lazy dogs sleep all day.\n"
        "Mr. Fox met Mrs. Dog at noon\n"
        "and nobody saw them\n"
        "until the evening. Then everyone did.\n"
    )


@pytest.fixture
def sample_input_file(tmp_path, sample_text):
    """Create a sample input file for testing"""
    path = tmp_path / "input.txt"
    path.write_text(sample_text, encoding="utf-8")
    return path


def intermediate_files(directory):
    return sorted(name for name in os.listdir(directory) if name.endswith(".itm"))
