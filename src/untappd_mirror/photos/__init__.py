"""
Photo handling for the Untappd mirror.

- PhotoAcquirer: Download a check-in photo, or fall back to the placeholder
- transcode_to_webp: Re-encode photos for delivery
"""

from untappd_mirror.photos.acquirer import PhotoAcquirer, PhotoError
from untappd_mirror.photos.transcoder import TranscodeError, transcode_to_webp

__all__ = [
    "PhotoAcquirer",
    "PhotoError",
    "TranscodeError",
    "transcode_to_webp",
]
