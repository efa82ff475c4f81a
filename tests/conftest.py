"""
Pytest configuration and shared fixtures for the Untappd mirror.

This module provides:
- Check-in factories for generating test data
- In-memory object storage
- Photo acquirers backed by httpx.MockTransport
- Sample images generated with Pillow

Example usage in tests:
    def test_something(checkin_factory, checkin_store):
        record = checkin_factory.create()
        checkin_store.put_original(b"...", record)
        assert checkin_store.objects.keys() == [record.storage_key()]
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest

from untappd_mirror.config import settings as settings_module
from untappd_mirror.photos import PhotoAcquirer
from untappd_mirror.storage import CheckinStore, InMemoryObjectStore

from tests.fixtures.factories import CheckinFactory, make_image_bytes


# ============================================================================
# FACTORY FIXTURES
# ============================================================================


@pytest.fixture
def checkin_factory() -> type[CheckinFactory]:
    """Provide a fresh CheckinFactory with counter reset."""
    CheckinFactory.reset()
    return CheckinFactory


# ============================================================================
# IMAGE FIXTURES
# ============================================================================


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small JPEG image."""
    return make_image_bytes()


@pytest.fixture
def placeholder_bytes() -> bytes:
    """Bytes of the test placeholder image (distinct from jpeg_bytes)."""
    return make_image_bytes(color=(10, 10, 10))


@pytest.fixture
def placeholder_path(tmp_path: Path, placeholder_bytes: bytes) -> Path:
    """Placeholder image written to a temporary file."""
    path = tmp_path / "placeholder.jpg"
    path.write_bytes(placeholder_bytes)
    return path


# ============================================================================
# STORAGE FIXTURES
# ============================================================================


@pytest.fixture
def memory_objects() -> InMemoryObjectStore:
    """Provide an empty in-memory object store."""
    return InMemoryObjectStore(bucket_name="test-bucket")


@pytest.fixture
def checkin_store(memory_objects: InMemoryObjectStore) -> CheckinStore:
    """Provide a CheckinStore over the in-memory object store."""
    return CheckinStore(memory_objects)


# ============================================================================
# PHOTO FIXTURES
# ============================================================================


@pytest.fixture
def photo_transport(jpeg_bytes: bytes) -> httpx.MockTransport:
    """Mock photo origin: every GET returns the test JPEG."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=jpeg_bytes, headers={"Content-Type": "image/jpeg"})

    return httpx.MockTransport(handler)


@pytest.fixture
def acquirer(placeholder_path: Path, photo_transport: httpx.MockTransport) -> Iterator[PhotoAcquirer]:
    """Provide a PhotoAcquirer whose downloads hit the mock transport.

    Yields:
        PhotoAcquirer instance
    """
    client = httpx.Client(transport=photo_transport)
    with PhotoAcquirer(placeholder_path, client=client) as photo_acquirer:
        yield photo_acquirer
    client.close()


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    """Run with no MIRROR_* variables, an empty working directory and no cached settings.

    Yields:
        The temporary working directory
    """
    for key in list(os.environ):
        if key.startswith(settings_module.ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    settings_module.get_settings.cache_clear()
    yield tmp_path
    settings_module.get_settings.cache_clear()


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("markers", "integration: mark as integration test")
    config.addinivalue_line("markers", "unit: mark as unit test")
