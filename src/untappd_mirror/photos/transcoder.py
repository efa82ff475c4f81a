"""
WebP transcoding with Pillow.
"""

from __future__ import annotations

import io

from PIL import Image, ImageOps, UnidentifiedImageError

DEFAULT_QUALITY = 75


class TranscodeError(ValueError):
    """Input bytes are not a decodable image."""


def transcode_to_webp(data: bytes, quality: int = DEFAULT_QUALITY) -> bytes:
    """Re-encode an image as lossy WebP.

    EXIF orientation is applied before encoding since WebP output carries
    no orientation tag. Pure function; safe to call from any thread.

    Args:
        data: Source image bytes (JPEG, PNG, ...)
        quality: WebP quality, 0-100

    Returns:
        WebP bytes

    Raises:
        TranscodeError: If the input cannot be decoded or encoded
    """
    if not data:
        raise TranscodeError("empty image")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA" if "A" in img.getbands() else "RGB")

            out = io.BytesIO()
            img.save(out, format="WEBP", quality=quality)
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise TranscodeError(f"cannot transcode image: {e}") from e

    return out.getvalue()
