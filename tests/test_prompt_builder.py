from adstudio.core.request_types import GenerationRequest
from adstudio.prompting.presets import (
    find_preset_id,
    resolve_preset,
)
from adstudio.prompting.prompt_builder import (
    DEFAULT_OPTIMIZER_DRAFT,
    DEFAULT_PROMPT,
    build_image_instruction,
    build_modifier_block,
    build_optimizer_instruction,
)

import pytest


IMG = "data:image/png;base64,AAAA"


def test_blank_prompt_uses_default():
    assert build_image_instruction(GenerationRequest(prompt="   ")) == f"{DEFAULT_PROMPT}."


def test_trailing_period_not_doubled():
    assert build_image_instruction(GenerationRequest(prompt="a watch.")) == "a watch."


def test_modifier_order_is_angle_theme_style():
    request = GenerationRequest(
        prompt="bottle",
        style_preset="neon lights",
        angle_preset="top-down view",
        theme_preset="urban street",
    )

    assert build_modifier_block(request) == (
        " [Artistic Context: top-down view, urban street, neon lights]"
    )
    assert build_image_instruction(request).startswith("bottle. [Artistic Context:")


def test_empty_presets_produce_no_block():
    assert build_modifier_block(GenerationRequest(prompt="x", style_preset=" ")) == ""


def test_compositing_needs_product_and_background():
    composite = GenerationRequest(prompt="shoe", product_images=[IMG], background_images=[IMG])
    product_only = GenerationRequest(prompt="shoe", product_images=[IMG])

    assert build_image_instruction(composite).startswith("COMPOSITING TASK")
    assert build_image_instruction(product_only) == "shoe."


def test_reference_wins_over_compositing():
    request = GenerationRequest(
        prompt="brighter",
        product_images=[IMG],
        background_images=[IMG],
        reference_image=IMG,
    )

    instruction = build_image_instruction(request)

    assert instruction.startswith("REFINEMENT TASK")
    assert "COMPOSITING" not in instruction
    assert "brighter" in instruction


def test_optimizer_instruction_defaults():
    instruction = build_optimizer_instruction(GenerationRequest(), "")

    assert "Angle: Default" in instruction
    assert f'"{DEFAULT_OPTIMIZER_DRAFT}"' in instruction
    assert "under 80 words" in instruction


def test_preset_lookup_both_ways():
    fragment = resolve_preset("angle", "top-down")

    assert fragment == "top-down view, flat lay photography"
    assert find_preset_id("angle", fragment) == "top-down"
    assert find_preset_id("angle", "custom words") is None


@pytest.mark.parametrize("kind,preset_id", [("style", "baroque"), ("mood", "none")])
def test_unknown_presets_rejected(kind, preset_id):
    with pytest.raises(ValueError):
        resolve_preset(kind, preset_id)


def test_only_one_trailing_period_absorbed():
    assert build_image_instruction(GenerationRequest(prompt="a bag...")) == "a bag..."
    assert build_image_instruction(GenerationRequest(prompt="a bag")) == "a bag."


def test_empty_reference_keeps_compositing_mode():
    request = GenerationRequest(
        prompt="shoe",
        product_images=[IMG],
        background_images=[IMG],
        reference_image="",
    )

    assert build_image_instruction(request).startswith("COMPOSITING TASK")
