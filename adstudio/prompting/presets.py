"""Fixed preset catalogs (id -> display name -> prompt fragment).

The `none` entry of every catalog resolves to an empty fragment, which prompt
assembly treats as "no modifier".
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Preset:
    id: str
    name: str
    prompt: str


STYLE_PRESETS: Tuple[Preset, ...] = (
    Preset("none", "Original", ""),
    Preset("cinematic", "Cinematic", "cinematic lighting, dramatic shadows, professional photography, high contrast"),
    Preset("minimalist", "Minimalist", "minimalist design, clean background, soft lighting, elegant, simple"),
    Preset("luxury", "Luxury", "luxury aesthetic, gold accents, premium material texture, expensive feel, high-end"),
    Preset("vibrant", "Vibrant", "vibrant colors, energetic atmosphere, bright pop, commercial studio lighting"),
    Preset("organic", "Organic", "natural elements, eco-friendly vibe, soft daylight, earthy tones, sustainable look"),
    Preset("cyberpunk", "Cyberpunk", "neon lights, high-tech, futuristic aesthetic, dark background with blue and pink glows"),
)

ANGLE_PRESETS: Tuple[Preset, ...] = (
    Preset("none", "Auto Angle", ""),
    Preset("eye-level", "Eye Level", "eye level shot, straight-on perspective"),
    Preset("top-down", "Top Down", "top-down view, flat lay photography"),
    Preset("low-angle", "Low Angle", "low angle hero shot, looking up at the product"),
    Preset("close-up", "Close-up", "macro photography, close-up shot, shallow depth of field"),
    Preset("side-view", "Side View", "side profile view, side perspective"),
    Preset("isometric", "Isometric", "isometric perspective, 45 degree angle view"),
)

THEME_PRESETS: Tuple[Preset, ...] = (
    Preset("none", "Default", ""),
    Preset("tech", "Tech/Modern", "modern technology lab, futuristic workbench, clean digital aesthetic"),
    Preset("nature", "Nature/Garden", "lush garden setting, morning sunlight through leaves, natural outdoors"),
    Preset("cosmetics", "Beauty/Cosmetic", "high-end cosmetic display, liquid ripples, soft pastel colors, elegant lighting"),
    Preset("beverage", "Beverage/Ice", "chilled environment, condensation droplets, ice cubes, refreshing splashing water"),
    Preset("urban", "Urban/Street", "gritty urban street, concrete textures, blurred city bokeh background"),
    Preset("home", "Interior/Home", "cozy modern living room, soft home interior lighting, lifestyle background"),
)

CATALOGS: Dict[str, Tuple[Preset, ...]] = {
    "style": STYLE_PRESETS,
    "angle": ANGLE_PRESETS,
    "theme": THEME_PRESETS,
}


def resolve_preset(kind: str, preset_id: str) -> str:
    """Return the prompt fragment for `preset_id` in catalog `kind`.

    Raises:
        ValueError: Unknown catalog or preset id.
    """
    catalog = CATALOGS.get(kind)
    if catalog is None:
        raise ValueError(f"Unknown preset catalog: {kind}")

    for preset in catalog:
        if preset.id == preset_id:
            return preset.prompt

    raise ValueError(f"Unknown {kind} preset: {preset_id}")


def find_preset_id(kind: str, fragment: str) -> str | None:
    """Reverse lookup used for display; `None` when the fragment is custom."""
    for preset in CATALOGS.get(kind, ()):
        if preset.prompt == fragment:
            return preset.id
    return None
