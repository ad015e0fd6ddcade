"""Single-image service used by the batch orchestrator.

Role in pipeline:
    - Receives one resolved `GenerationRequest`.
    - Selects the tier's model and assembles the `generateContent` payload.
    - Returns the provider's image payload unchanged to the orchestrator.

Payload shape:
    - Up to `MAX_WIRE_PRODUCT_IMAGES` product images, then up to
      `MAX_WIRE_BACKGROUND_IMAGES` background images, then the reference image.
    - One trailing text part from `prompt_builder.build_image_instruction`.
    - `imageConfig.aspectRatio` always; `imageConfig.imageSize` for Pro only.

Size validation:
    The wire caps are independent of the 5-per-slot cap enforced by the asset
    slots; extra assets stay in the slots but are not transmitted.

Error handling strategy:
    Typed exceptions from `image.client` are propagated unchanged.
"""

from typing import Any, Dict

from adstudio.core.request_types import GenerationRequest, Tier
from adstudio.image.client import inline_part, send_image_request
from adstudio.llm.provider_config import IMAGE_MODELS
from adstudio.prompting.prompt_builder import build_image_instruction


MAX_WIRE_PRODUCT_IMAGES = 3
MAX_WIRE_BACKGROUND_IMAGES = 2


def build_image_payload(request: GenerationRequest) -> Dict[str, Any]:
    """Assemble the provider JSON body for one single-image call.

    Args:
        request: Resolved generation request.

    Returns:
        `generateContent` request body.
    """
    parts = []

    for image in request.product_images[:MAX_WIRE_PRODUCT_IMAGES]:
        parts.append(inline_part(image))

    for image in request.background_images[:MAX_WIRE_BACKGROUND_IMAGES]:
        parts.append(inline_part(image))

    if request.is_refinement:
        parts.append(inline_part(request.reference_image))

    parts.append({"text": build_image_instruction(request)})

    image_config = {"aspectRatio": request.aspect_ratio.value}
    if request.tier == Tier.PRO:
        image_config["imageSize"] = request.image_size.value

    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {"imageConfig": image_config},
    }


async def generate_commercial_image(request: GenerationRequest) -> str:
    """Generate exactly one image for `request` via the tier's model.

    Returns:
        Image payload as a data URL.
    """
    payload = build_image_payload(request)
    return await send_image_request(payload, IMAGE_MODELS[request.tier])
