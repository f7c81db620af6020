"""
Helpers for moving image payloads between data URLs, base64 text, and raw bytes.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

ImagePayload = bytes | str | Path

_BASE64_MARKER = "base64,"


def strip_data_url_prefix(payload: str) -> str:
    """
    Drop a ``data:<mime>;base64,`` prefix, returning the bare base64 body.
    """
    if _BASE64_MARKER in payload:
        return payload.split(_BASE64_MARKER, maxsplit=1)[1]
    return payload


def decode_image_payload(payload: ImagePayload) -> bytes:
    """
    Normalise an image payload into raw image bytes.

    ``Path`` values are read from disk, strings are treated as base64 text (with or
    without a data URL prefix), and bytes pass through unless they are themselves an
    ASCII data URL.
    """
    if isinstance(payload, Path):
        image_path = payload.expanduser()
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found at '{image_path}'.")
        return image_path.read_bytes()

    if isinstance(payload, bytes):
        if not payload.startswith(b"data:"):
            return payload
        payload = payload.decode("ascii", errors="ignore")

    if not isinstance(payload, str):
        raise TypeError("Image payload must be bytes, a base64 string, or a Path.")

    body = "".join(strip_data_url_prefix(payload.strip()).split())
    if not body:
        raise ValueError("Image payload is empty.")

    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image payload is not valid base64 data.") from exc
