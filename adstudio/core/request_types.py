"""Generation request data contracts for `adstudio.core.engine`.

Architectural role:
    Defines the immutable request snapshot handed to the batch orchestrator and the
    history entry produced for every successful image.

Control-flow interaction:
    - `engine.StudioSession.build_request` snapshots session state into a
      `GenerationRequest`.
    - `image.batch.generate_batch_images` consumes the request unchanged.
    - `memory.history_cache.HistoryCache` stores `GeneratedImage` entries whose
      `originating_request` is the exact submitted snapshot.

Immutability:
    Both data classes are frozen. Image collections are normalized to tuples so a
    request cannot observe later slot mutations.
"""

from dataclasses import dataclass, field
from enum import Enum


class Tier(str, Enum):
    """Provider tier; selects the remote model and concurrency ceiling."""

    FLASH = "flash"
    PRO = "pro"


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    PORTRAIT = "3:4"
    LANDSCAPE = "4:3"
    STORY = "9:16"
    WIDE = "16:9"


class ImageSize(str, Enum):
    """Output resolution; forwarded to the provider for the Pro tier only."""

    SIZE_1K = "1K"
    SIZE_2K = "2K"
    SIZE_4K = "4K"


# Batch sizes offered by the adapters. The orchestrator itself accepts any
# positive count.
ALLOWED_BATCH_COUNTS = (1, 2, 4, 8)


@dataclass(frozen=True)
class GenerationRequest:
    """Fully resolved, immutable generation request.

    Attributes:
        prompt: Raw user prompt. May be empty; prompt assembly substitutes a
            default instruction in that case.
        aspect_ratio: Requested output aspect ratio.
        image_size: Requested output size (Pro tier only).
        style_preset: Resolved style fragment, `""` for none.
        angle_preset: Resolved camera-angle fragment, `""` for none.
        theme_preset: Resolved theme fragment, `""` for none.
        tier: Provider tier.
        batch_count: Number of images requested.
        product_images: Product payloads (data URLs), at most 5.
        background_images: Background payloads (data URLs), at most 5.
        reference_image: Optional refine base payload.
    """

    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    image_size: ImageSize = ImageSize.SIZE_1K
    style_preset: str = ""
    angle_preset: str = ""
    theme_preset: str = ""
    tier: Tier = Tier.FLASH
    batch_count: int = 4
    product_images: tuple = ()
    background_images: tuple = ()
    reference_image: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "aspect_ratio", AspectRatio(self.aspect_ratio))
        object.__setattr__(self, "image_size", ImageSize(self.image_size))
        object.__setattr__(self, "tier", Tier(self.tier))
        object.__setattr__(self, "product_images", tuple(self.product_images))
        object.__setattr__(self, "background_images", tuple(self.background_images))

        if (
            isinstance(self.batch_count, bool)
            or not isinstance(self.batch_count, int)
            or self.batch_count < 1
        ):
            raise ValueError(f"batch_count must be a positive integer, got {self.batch_count!r}")

    @property
    def is_refinement(self) -> bool:
        """Whether a reference image switches the request to refine mode."""
        return bool(self.reference_image)

    @property
    def is_compositing(self) -> bool:
        """Whether product and background assets are blended without a reference."""
        return (
            not self.is_refinement
            and bool(self.product_images)
            and bool(self.background_images)
        )

    @property
    def has_input(self) -> bool:
        """Whether the request carries any prompt text or asset at all."""
        return bool(
            self.prompt.strip()
            or self.product_images
            or self.background_images
            or self.reference_image
        )


@dataclass(frozen=True)
class GeneratedImage:
    """One successful result, owned by the history cache once appended.

    Attributes:
        id: `<epoch-ms>-<index>` identifier, unique within a batch.
        url: Image payload as a data URL.
        prompt_used: Prompt label shown in history.
        created_at: Epoch milliseconds shared by all images of one batch.
        aspect_ratio: Aspect ratio of the originating request.
        originating_request: Exact request snapshot used for quick retry.
    """

    id: str
    url: str
    prompt_used: str
    created_at: int
    aspect_ratio: AspectRatio
    originating_request: GenerationRequest = field(repr=False)
