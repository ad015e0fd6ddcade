"""
HTTP API adapter for AdStudio.

Architectural role:
- Expose one process-wide `StudioSession` over JSON endpoints.
- Validate request bodies with pydantic models.
- Map typed session/provider failures onto HTTP status codes.

Endpoint responsibilities:
- `GET /v1/presets`: preset catalogs.
- `GET|PUT /v1/session`: read or update prompt, presets, tier, ratio, size, count.
- `POST /v1/assets/{slot}`, `DELETE /v1/assets/{slot}/{index}`,
  `PUT /v1/assets/reference`: asset slot management (images as data URLs).
- `POST /v1/optimize`: fail-soft prompt rewrite.
- `POST /v1/generate`: run a batch.
- `GET|DELETE /v1/history`, `POST /v1/history/{id}/retry|refine|export`.

Error handling strategy:
- Authentication failure -> 401 `{"error": "AUTH_ERROR", "reselect_credentials": true}`.
- Empty request or invalid values -> 400.
- Unknown history entry -> 404.
- Batch already running -> 409.
- Zero-success batch -> 502 with the first failure's code and message.

Side effects:
- Loads environment variables at import time via `load_dotenv()`.
- State lives in memory for the process lifetime only.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from typing import List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from adstudio.api.multimodal.file_input_manager import filter_image_inputs
from adstudio.core.asset_slots import AssetSlot
from adstudio.core.engine import (
    EmptyRequestError,
    GenerationInProgressError,
    StudioSession,
)
from adstudio.core.request_types import AspectRatio, GeneratedImage, ImageSize, Tier
from adstudio.image.batch import plan_chunks
from adstudio.image.errors import AuthenticationError, ImageGenerationError
from adstudio.prompting.presets import CATALOGS


# Request/response debug logging is opt-in.
DEBUG = os.getenv("DEBUG") == "true"

logging.basicConfig(level="DEBUG" if DEBUG else os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="AdStudio")


# ============================================================
# Session
# ============================================================

_SESSION: Optional[StudioSession] = None


def set_session(session: Optional[StudioSession]) -> None:
    """Override or clear the process-wide session (tests, embedding)."""
    global _SESSION
    _SESSION = session


def get_session() -> StudioSession:
    """Return the process-wide session, creating it on first use."""
    global _SESSION
    if _SESSION is None:
        _SESSION = StudioSession()
    return _SESSION


# ============================================================
# Request Schemas
# ============================================================

class SessionUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged."""
    prompt: Optional[str] = None
    aspect_ratio: Optional[AspectRatio] = None
    image_size: Optional[ImageSize] = None
    style: Optional[str] = None
    angle: Optional[str] = None
    theme: Optional[str] = None
    tier: Optional[Tier] = None
    batch_count: Optional[int] = None


class AssetUpload(BaseModel):
    images: List[str]


class ReferenceUpdate(BaseModel):
    image: Optional[str] = None


class ExportRequest(BaseModel):
    directory: Optional[str] = None


# ============================================================
# Response Helpers
# ============================================================

def _error(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, **extra},
    )


def _session_state(session: StudioSession) -> dict:
    product_images, background_images, reference_image = session.slots.snapshot()
    return {
        "prompt": session.prompt,
        "aspect_ratio": session.aspect_ratio.value,
        "image_size": session.image_size.value,
        "presets": session.preset_ids(),
        "tier": session.tier.value,
        "batch_count": session.batch_count,
        "chunks": plan_chunks(session.batch_count, session.tier),
        "product_images": len(product_images),
        "background_images": len(background_images),
        "has_reference": reference_image is not None,
        "is_generating": session.is_generating,
    }


def _entry(entry: GeneratedImage) -> dict:
    return {
        "id": entry.id,
        "url": entry.url,
        "prompt_used": entry.prompt_used,
        "created_at": entry.created_at,
        "aspect_ratio": entry.aspect_ratio.value,
        "tier": entry.originating_request.tier.value,
    }


async def _run_batch(coroutine):
    """Await a session batch and translate failures into HTTP responses."""
    try:
        entries = await coroutine
    except EmptyRequestError as e:
        return _error(400, "EMPTY_REQUEST", str(e))
    except GenerationInProgressError as e:
        return _error(409, "IN_PROGRESS", str(e))
    except AuthenticationError as e:
        return _error(401, e.code.value, str(e), reselect_credentials=True)
    except ImageGenerationError as e:
        return _error(502, e.code.value, str(e))

    if DEBUG:
        logger.debug("Batch produced %d image(s)", len(entries))

    return {"images": [_entry(entry) for entry in entries]}


# ============================================================
# Presets & Session
# ============================================================

@app.get("/v1/presets")
def list_presets():
    """Return every preset catalog as `{kind: [{id, name, prompt}]}`."""
    return {
        kind: [
            {"id": preset.id, "name": preset.name, "prompt": preset.prompt}
            for preset in catalog
        ]
        for kind, catalog in CATALOGS.items()
    }


@app.get("/v1/session")
def read_session():
    return _session_state(get_session())


@app.put("/v1/session")
def update_session(update: SessionUpdate):
    """
    Apply a partial settings update.

    Input validation behavior:
    - Unknown preset ids or a non-positive batch count -> HTTP 400, session unchanged
      for that field.
    """
    session = get_session()

    try:
        if update.prompt is not None:
            session.prompt = update.prompt
        if update.aspect_ratio is not None:
            session.set_aspect_ratio(update.aspect_ratio)
        if update.image_size is not None:
            session.set_image_size(update.image_size)
        for kind in CATALOGS:
            preset_id = getattr(update, kind)
            if preset_id is not None:
                session.select_preset(kind, preset_id)
        if update.batch_count is not None:
            session.set_batch_count(update.batch_count)
        if update.tier is not None:
            session.set_tier(update.tier)
    except ValueError as e:
        return _error(400, "INVALID_VALUE", str(e))

    return _session_state(session)


# ============================================================
# Asset Slots
# ============================================================

@app.post("/v1/assets/{slot}")
def add_assets(slot: AssetSlot, upload: AssetUpload):
    """Add data-URL images to a slot; non-image and overflow inputs are dropped."""
    session = get_session()
    # Server-side paths are never read on behalf of HTTP clients.
    images = filter_image_inputs(
        image for image in upload.images if image.startswith("data:")
    )

    try:
        added = session.slots.add(images, slot)
    except ValueError as e:
        return _error(400, "INVALID_IMAGE", str(e))

    return {"added": added, "count": len(session.slots.images(slot))}


@app.delete("/v1/assets/{slot}/{index}")
def remove_asset(slot: AssetSlot, index: int):
    session = get_session()

    try:
        session.slots.remove(index, slot)
    except IndexError as e:
        return _error(404, "NOT_FOUND", str(e))

    return {"count": len(session.slots.images(slot))}


@app.put("/v1/assets/reference")
def set_reference(update: ReferenceUpdate):
    session = get_session()

    if update.image is not None and not update.image.startswith("data:image/"):
        return _error(400, "INVALID_IMAGE", "Reference must be an image data URL")

    try:
        session.slots.set_reference(update.image)
    except ValueError as e:
        return _error(400, "INVALID_IMAGE", str(e))

    return {"has_reference": session.slots.reference is not None}


# ============================================================
# Optimize & Generate
# ============================================================

@app.post("/v1/optimize")
def optimize():
    """Rewrite the session prompt; always succeeds (fail-soft)."""
    return {"prompt": get_session().optimize_prompt()}


@app.post("/v1/generate")
async def generate():
    return await _run_batch(get_session().generate())


# ============================================================
# History
# ============================================================

@app.get("/v1/history")
def list_history():
    return {"images": [_entry(entry) for entry in get_session().history.entries()]}


@app.delete("/v1/history")
def wipe_history():
    get_session().wipe_history()
    return {"images": []}


@app.post("/v1/history/{entry_id}/retry")
async def retry(entry_id: str):
    session = get_session()
    if session.history.get(entry_id) is None:
        return _error(404, "NOT_FOUND", f"No history entry {entry_id}")
    return await _run_batch(session.quick_retry(entry_id))


@app.post("/v1/history/{entry_id}/refine")
def refine(entry_id: str):
    session = get_session()

    try:
        session.refine_from(entry_id)
    except KeyError:
        return _error(404, "NOT_FOUND", f"No history entry {entry_id}")

    return {"has_reference": True}


@app.post("/v1/history/{entry_id}/export")
def export(entry_id: str, request: Optional[ExportRequest] = None):
    session = get_session()

    try:
        path = session.export(entry_id, request.directory if request else None)
    except KeyError:
        return _error(404, "NOT_FOUND", f"No history entry {entry_id}")
    except ValueError as e:
        return _error(400, "INVALID_IMAGE", str(e))

    return {"path": path}
