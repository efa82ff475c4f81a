"""
Test fixtures for the Untappd mirror.

This module provides:
- CheckinFactory: Create test check-ins with sensible defaults
- feed_payload: Build feed API response bodies
- make_image_bytes: Encode small test images with Pillow
"""

from tests.fixtures.factories import CheckinFactory, feed_payload, make_image_bytes

__all__ = [
    "CheckinFactory",
    "feed_payload",
    "make_image_bytes",
]
