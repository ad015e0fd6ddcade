"""Prompt optimizer.

Architectural role:
    Single-shot rewrite of a draft prompt, using the current assets and presets as
    multimodal context. Called from `engine.StudioSession.optimize_prompt`; it is
    not part of the concurrent batch path.

Model call flow:
    request snapshot + draft -> labelled image parts + instruction ->
    `client.send_request(...)` -> rewritten prompt.

Failure scenarios:
    Never raises to the caller. Any failure, or an empty model answer, returns the
    draft unchanged. Not retried.
"""

import logging

from adstudio.core.request_types import GenerationRequest
from adstudio.image.client import inline_part
from adstudio.llm.client import send_request
from adstudio.prompting.prompt_builder import build_optimizer_instruction


logger = logging.getLogger(__name__)


def build_optimizer_parts(request: GenerationRequest, draft: str) -> list:
    """Return labelled image parts followed by the rewrite instruction.

    Every product and background image is sent (no wire cap applies here), each
    followed by a short text label.
    """
    parts = []

    for idx, image in enumerate(request.product_images):
        parts.append(inline_part(image))
        parts.append({"text": f"Product reference {idx + 1}"})

    for idx, image in enumerate(request.background_images):
        parts.append(inline_part(image))
        parts.append({"text": f"Background reference {idx + 1}"})

    if request.is_refinement:
        parts.append(inline_part(request.reference_image))
        parts.append({"text": "The previously generated image to refine."})

    parts.append({"text": build_optimizer_instruction(request, draft)})
    return parts


def optimize_prompt(request: GenerationRequest, draft: str) -> str:
    """Rewrite `draft` into a detailed commercial-photography prompt.

    Args:
        request: Snapshot of the current assets and presets.
        draft: User's current prompt text.

    Returns:
        Optimized prompt, or `draft` unchanged on any failure.
    """
    try:
        optimized = send_request(build_optimizer_parts(request, draft))
    except Exception:
        logger.exception("Prompt optimization failed")
        return draft

    return optimized or draft
