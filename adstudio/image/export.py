"""Local export of generated images.

Writes one image payload to disk under a timestamp-based name
(`adstudio-<epoch-ms>.<ext>`). Purely local; no network access.
"""

import base64
import binascii
import mimetypes
import os
import time

from adstudio.image.client import split_data_url


EXPORT_DIR = os.getenv("EXPORT_DIR", "exports")
EXPORT_PREFIX = "adstudio"


def export_filename(mime_type: str, timestamp_ms: int | None = None) -> str:
    """Return `adstudio-<epoch-ms>.<ext>` for the given media type."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    extension = mimetypes.guess_extension(mime_type) or ".png"
    if extension == ".jpe":
        extension = ".jpg"
    return f"{EXPORT_PREFIX}-{timestamp_ms}{extension}"


def export_image(payload: str, directory: str | None = None) -> str:
    """Decode `payload` and write it into `directory`.

    Args:
        payload: Image data URL.
        directory: Target directory; defaults to `EXPORT_DIR`. Created if missing.

    Returns:
        Path of the written file.

    Raises:
        ValueError: Payload body is not valid base64.
    """
    mime_type, data = split_data_url(payload)
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image payload is not valid base64") from exc

    directory = directory or EXPORT_DIR
    os.makedirs(directory, exist_ok=True)

    filename = export_filename(mime_type)
    path = os.path.join(directory, filename)
    stem, extension = os.path.splitext(filename)
    suffix = 1
    while os.path.exists(path):
        path = os.path.join(directory, f"{stem}-{suffix}{extension}")
        suffix += 1

    with open(path, "wb") as f:
        f.write(raw)

    return path
