"""Prompt assembly helpers used by the image service and the prompt optimizer.

This module is intentionally narrow: it only builds instruction strings from an
already resolved request. Asset selection, payload encoding, and model invocation
happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of prompt components per generation mode.
    - No hidden side effects (no I/O, no global state mutation).
"""

from adstudio.core.request_types import GenerationRequest


DEFAULT_PROMPT = "Professional commercial advertisement photography"
DEFAULT_OPTIMIZER_DRAFT = "A professional product shot"


# =========================================================
# IMAGE INSTRUCTION
# =========================================================
# Component order:
#   1) Mode preamble wrapping the base prompt (refine > compositing > none)
#   2) Artistic context block built from non-empty presets (angle, theme, style)

def build_modifier_block(request: GenerationRequest) -> str:
    """Return the artistic-context suffix, or `""` when every preset is empty."""
    modifiers = [
        fragment.strip()
        for fragment in (request.angle_preset, request.theme_preset, request.style_preset)
        if fragment and fragment.strip()
    ]
    if not modifiers:
        return ""
    return f" [Artistic Context: {', '.join(modifiers)}]"


def build_image_instruction(request: GenerationRequest) -> str:
    """Build the text instruction sent alongside the image attachments.

    Args:
        request: Resolved generation request.

    Returns:
        Instruction string for one provider call.

    Edge cases:
        - Blank prompt falls back to `DEFAULT_PROMPT`.
        - A reference image always wins over compositing, even when product and
          background images are present too.
        - One trailing period of the prompt is absorbed by the closing period;
          any further periods the user typed are kept.
    """
    base_prompt = request.prompt.strip() or DEFAULT_PROMPT

    if request.is_refinement:
        base_prompt = (
            "REFINEMENT TASK: Use the provided image as a base. "
            f"Modify it according to this new request: {base_prompt}. "
            "Keep the core product and layout but improve quality and lighting"
        )
    elif request.is_compositing:
        base_prompt = (
            "COMPOSITING TASK: Take the product features from the first few images "
            "and place them realistically into the environment from the subsequent "
            f"images. {base_prompt}"
        )

    if base_prompt.endswith("."):
        base_prompt = base_prompt[:-1]

    return f"{base_prompt}.{build_modifier_block(request)}"


# =========================================================
# OPTIMIZER INSTRUCTION
# =========================================================
# Appended after the labelled image parts of an optimization call.

def build_optimizer_instruction(request: GenerationRequest, draft: str) -> str:
    """Build the rewrite instruction for the prompt optimizer.

    Args:
        request: Snapshot providing preset context.
        draft: User's current prompt; may be empty.

    Returns:
        Instruction asking the text model for one English prompt under 80 words.
    """
    return (
        "You are a professional AI Prompt Engineer for commercial photography.\n"
        "Your task is to create a highly detailed and effective image generation "
        "prompt in ENGLISH.\n\n"
        "Context:\n"
        "- User wants to create a commercial ad.\n"
        f"- Angle: {request.angle_preset or 'Default'}\n"
        f"- Theme: {request.theme_preset or 'Default'}\n"
        f"- Style: {request.style_preset or 'Default'}\n"
        f"- User input: \"{draft.strip() or DEFAULT_OPTIMIZER_DRAFT}\"\n\n"
        "Goal:\n"
        "- Describe the product features based on the provided images.\n"
        "- Describe a perfect commercial environment blending the provided background ideas.\n"
        "- If a 'refine' image is provided, focus on improving its lighting, "
        "composition, or specific user requests.\n"
        "- Use technical terms: 'volumetric lighting', 'subsurface scattering', "
        "'depth of field', '8k resolution', 'raytracing'.\n"
        "- Keep output under 80 words.\n"
        "- Return ONLY the optimized prompt text.\n"
    )
