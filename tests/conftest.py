"""Test configuration and fixtures."""

import pytest

from tests.helpers import (
    FakeCatalog,
    FakeCopier,
    FakeManifestFetcher,
    MemoryManifestStore,
    make_option,
)


@pytest.fixture
def catalog():
    """Catalog with three names and a handful of tags."""
    return FakeCatalog(
        {
            "pause": ["3.1", "3.2"],
            "etcd": ["3.4.13-0"],
            "coredns": ["1.7.0", "1.8.0"],
        }
    )


@pytest.fixture
def manifests():
    """Manifest fetcher fake."""
    return FakeManifestFetcher()


@pytest.fixture
def copier():
    """Copier fake."""
    return FakeCopier()


@pytest.fixture
def store():
    """In-memory manifest store."""
    return MemoryManifestStore()


@pytest.fixture
def option():
    """Sync options for fast tests."""
    return make_option(namespace="ns")


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (servers, subprocesses)"
    )
