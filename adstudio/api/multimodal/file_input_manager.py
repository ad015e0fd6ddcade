"""
Image file intake for the asset slots.

Architectural role:
- Convert raw image inputs (local paths, `file://` URLs, bytes, data URLs) into the
  data-URL payload form stored by `core.asset_slots.AssetSlots`.
- Filter drop batches down to image-typed inputs.
- Enforce size and decodability constraints before a payload enters a slot.

Processing lifecycle:
1. `filter_image_inputs` drops non-image inputs silently.
2. `load_image_payload` resolves one input to raw bytes.
3. Size is checked against `MAX_FILE_SIZE_BYTES`.
4. Pillow verifies the bytes decode as an image and reports its format.
5. The bytes are re-encoded as `data:<mime>;base64,<data>`.

Error handling strategy:
- Filtering never raises; unusable inputs are dropped.
- Loading raises `ValueError` for unreadable, oversized, or non-image input; callers
  decide whether a single failure aborts a multi-file add.

Side effects:
- Reads local files. No temporary files are written.
"""

import base64
import binascii
import io
import os
from typing import Iterable, List, Optional, Union
from urllib.parse import unquote, urlparse

from PIL import Image, UnidentifiedImageError


# ============================================================
# CONFIG
# ============================================================

MAX_FILE_SIZE_MB = float(os.getenv("MAX_FILE_SIZE_MB", "10"))
MAX_FILE_SIZE_BYTES = int(MAX_FILE_SIZE_MB * 1024 * 1024)
IMAGE_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"
}
DEFAULT_MIME_TYPE = "image/png"

ImageInput = Union[str, bytes, os.PathLike]


# ============================================================
# PUBLIC ENTRYPOINTS
# ============================================================

def filter_image_inputs(inputs: Iterable[ImageInput]) -> List[ImageInput]:
    """
    Keep only image-typed inputs, preserving order.

    Classification:
    - data URL: kept when its declared media type is `image/*`.
    - path / `file://` URL: kept when the extension is a known image extension.
    - bytes: kept when Pillow can identify an image.
    """
    kept = []
    for item in inputs:
        if _looks_like_image(item):
            kept.append(item)
    return kept


def load_image_payload(file_ref: ImageInput) -> str:
    """
    Decode one image input into the data-URL payload form.

    Raises:
    - `ValueError` when the input cannot be read, exceeds the size limit, or does
      not decode as an image.
    """
    raw = _read_bytes(file_ref)

    if len(raw) > MAX_FILE_SIZE_BYTES:
        raise ValueError("File exceeds max size limit")

    mime_type = _detect_mime_type(raw)
    encoded = base64.b64encode(raw).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


# ============================================================
# INPUT RESOLUTION
# ============================================================

def _read_bytes(file_ref: ImageInput) -> bytes:
    """Resolve an input reference to its raw bytes."""
    if isinstance(file_ref, (bytes, bytearray)):
        return bytes(file_ref)

    if isinstance(file_ref, os.PathLike):
        file_ref = os.fspath(file_ref)

    if not isinstance(file_ref, str) or not file_ref:
        raise ValueError("Invalid image input")

    if file_ref.startswith("data:"):
        return _decode_data_url(file_ref)

    path = _resolve_path(file_ref)
    if not path or not os.path.isfile(path):
        raise ValueError("File does not exist")

    if os.path.getsize(path) > MAX_FILE_SIZE_BYTES:
        raise ValueError("File exceeds max size limit")

    with open(path, "rb") as f:
        return f.read()


def _resolve_path(file_ref: str) -> Optional[str]:
    """Map a plain path or local `file://` URL to a normalized path."""
    if file_ref.startswith("file://"):
        parsed = urlparse(file_ref)

        # Reject remote hosts in file URLs.
        if parsed.netloc not in ("", "localhost"):
            return None

        file_ref = unquote(parsed.path or "")

    if not file_ref:
        return None
    return os.path.realpath(os.path.expanduser(file_ref))


def _decode_data_url(data_url: str) -> bytes:
    """
    Decode the base64 body of a data URL.

    Applies an approximate decoded-size check before decoding.
    """
    if "," not in data_url:
        raise ValueError("Malformed data URL")

    _, encoded = data_url.split(",", 1)
    padding = 0
    if encoded.endswith("=="):
        padding = 2
    elif encoded.endswith("="):
        padding = 1
    approx_decoded_size = (len(encoded) * 3) // 4 - padding
    if approx_decoded_size > MAX_FILE_SIZE_BYTES:
        raise ValueError("File exceeds max size limit")

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Malformed base64 payload") from exc


# ============================================================
# TYPE DETECTION
# ============================================================

def _detect_mime_type(raw: bytes) -> str:
    """Verify `raw` is an image with Pillow and return its media type."""
    try:
        with Image.open(io.BytesIO(raw)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("Unsupported file type") from exc

    return Image.MIME.get(image_format or "", DEFAULT_MIME_TYPE)


def _looks_like_image(item: ImageInput) -> bool:
    """Cheap image-type classification used by drop filtering."""
    if isinstance(item, (bytes, bytearray)):
        try:
            _detect_mime_type(bytes(item))
        except ValueError:
            return False
        return True

    if isinstance(item, os.PathLike):
        item = os.fspath(item)

    if not isinstance(item, str) or not item:
        return False

    if item.startswith("data:"):
        header = item.split(",", 1)[0]
        return header[len("data:"):].lower().startswith("image/")

    path = urlparse(item).path if item.startswith("file://") else item
    _, ext = os.path.splitext(path)
    return ext.lower() in IMAGE_EXTENSIONS
