"""Session state and control flow for one AdStudio user.

Architectural role:
    `StudioSession` owns every piece of mutable state the adapters expose (asset
    slots, prompt, presets, tier, output settings, current batch, history) and
    turns it into immutable `GenerationRequest` snapshots for the orchestrator.

Control-flow model:
    1. Adapters mutate session settings and slots.
    2. `generate()` snapshots the state into a request and rejects empty input.
    3. `image.batch.generate_batch_images` runs the chunked batch.
    4. Successes replace the current batch and are prepended to history.

Quick retry:
    `quick_retry(entry_id)` restores the slots, prompt, and settings from the stored
    request and re-submits that same request object.

Error handling strategy:
    - `EmptyRequestError` when there is neither prompt text nor any asset.
    - `GenerationInProgressError` when a batch is already running.
    - `AuthenticationError` is logged and re-raised unchanged; adapters offer
      credential reselection via `reselect_credentials()`.
    - Other batch failures propagate unchanged; state is left untouched.

Side effects:
    - Mutates in-process state only; nothing is persisted.
    - `export()` writes one file to the export directory.
"""

import logging
import time
from typing import List, Optional, Protocol

from adstudio.core.asset_slots import AssetSlots
from adstudio.core.request_types import (
    AspectRatio,
    GeneratedImage,
    GenerationRequest,
    ImageSize,
    Tier,
)
from adstudio.image.batch import ImageGenerator, generate_batch_images
from adstudio.image.errors import AuthenticationError
from adstudio.image.export import export_image
from adstudio.llm.provider_config import EnvCredentialSelector
from adstudio.llm.service import optimize_prompt
from adstudio.memory.history_cache import HistoryCache
from adstudio.prompting.presets import CATALOGS, find_preset_id, resolve_preset


logger = logging.getLogger(__name__)

HISTORY_PROMPT_FALLBACK = "Ad Render"


class CredentialSelector(Protocol):
    """Authentication side-channel used for the Pro tier and auth failures."""

    def has_selected_api_key(self) -> bool:
        """Return whether usable credentials are currently selected."""
        ...

    def open_select_key(self) -> None:
        """Ask the user to (re)select credentials."""
        ...


class EmptyRequestError(ValueError):
    """Generation requested without prompt text or any asset."""


class GenerationInProgressError(RuntimeError):
    """A batch is already running for this session."""


class StudioSession:
    """Single-user session state plus the operations adapters call."""

    def __init__(
        self,
        slots: Optional[AssetSlots] = None,
        history: Optional[HistoryCache] = None,
        credentials: Optional[CredentialSelector] = None,
        generator: Optional[ImageGenerator] = None,
        optimizer=None,
    ):
        self.slots = slots or AssetSlots()
        self.history = history or HistoryCache()
        self.credentials = credentials or EnvCredentialSelector()
        self._generator = generator
        self._optimizer = optimizer or optimize_prompt

        self.prompt = ""
        self.aspect_ratio = AspectRatio.SQUARE
        self.image_size = ImageSize.SIZE_1K
        self.style_preset = ""
        self.angle_preset = ""
        self.theme_preset = ""
        self.tier = Tier.FLASH
        self.batch_count = 4

        self.current_batch: List[str] = []
        self.is_generating = False

    # =========================================================
    # SETTINGS
    # =========================================================

    def select_preset(self, kind: str, preset_id: str) -> str:
        """Resolve `preset_id` from catalog `kind` and store its fragment.

        Raises:
            ValueError: Unknown catalog or preset id.
        """
        fragment = resolve_preset(kind, preset_id)
        setattr(self, f"{kind}_preset", fragment)
        return fragment

    def set_tier(self, tier) -> None:
        """Switch tier; switching to Pro without credentials prompts selection."""
        tier = Tier(tier)
        if tier == Tier.PRO and not self.credentials.has_selected_api_key():
            logger.info("Pro tier selected without credentials; prompting for a key")
            self.credentials.open_select_key()
        self.tier = tier

    def set_aspect_ratio(self, aspect_ratio) -> None:
        self.aspect_ratio = AspectRatio(aspect_ratio)

    def set_image_size(self, image_size) -> None:
        self.image_size = ImageSize(image_size)

    def set_batch_count(self, count: int) -> None:
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"batch count must be a positive integer, got {count!r}")
        self.batch_count = count

    def reselect_credentials(self) -> None:
        self.credentials.open_select_key()

    # =========================================================
    # REQUEST SNAPSHOT
    # =========================================================

    def build_request(self) -> GenerationRequest:
        """Snapshot the current state into an immutable request."""
        product_images, background_images, reference_image = self.slots.snapshot()
        return GenerationRequest(
            prompt=self.prompt,
            aspect_ratio=self.aspect_ratio,
            image_size=self.image_size,
            style_preset=self.style_preset,
            angle_preset=self.angle_preset,
            theme_preset=self.theme_preset,
            tier=self.tier,
            batch_count=self.batch_count,
            product_images=product_images,
            background_images=background_images,
            reference_image=reference_image,
        )

    def restore(self, request: GenerationRequest) -> None:
        """Load every setting and slot from a stored request."""
        self.prompt = request.prompt
        self.aspect_ratio = request.aspect_ratio
        self.image_size = request.image_size
        self.style_preset = request.style_preset
        self.angle_preset = request.angle_preset
        self.theme_preset = request.theme_preset
        self.tier = request.tier
        self.batch_count = request.batch_count
        self.slots.restore(
            request.product_images,
            request.background_images,
            request.reference_image,
        )

    # =========================================================
    # GENERATION
    # =========================================================

    async def generate(self) -> List[GeneratedImage]:
        """Run a batch for the current state.

        Returns:
            History entries created for the successful images, in output order.

        Raises:
            EmptyRequestError: No prompt and no assets.
            GenerationInProgressError: A batch is already running.
            AuthenticationError: Provider rejected the credentials.
            ImageGenerationError: Every call of the batch failed.
        """
        request = self.build_request()
        if not request.has_input:
            raise EmptyRequestError("Enter a description or upload images.")
        return await self._run(request)

    async def quick_retry(self, entry_id: str) -> List[GeneratedImage]:
        """Restore and re-submit the request behind a history entry.

        Raises:
            KeyError: Unknown history entry.
            GenerationInProgressError: A batch is already running; settings are
                left untouched.
        """
        entry = self._require_entry(entry_id)
        request = self.history.replay_prerequisites(entry)
        # Rejected retries must not overwrite the current settings.
        self._ensure_idle()
        self.restore(request)
        return await self._run(request)

    def _ensure_idle(self) -> None:
        if self.is_generating:
            raise GenerationInProgressError("A generation is already in progress.")

    async def _run(self, request: GenerationRequest) -> List[GeneratedImage]:
        self._ensure_idle()
        self.is_generating = True
        try:
            images = await generate_batch_images(
                request,
                request.batch_count,
                generator=self._generator,
            )
        except AuthenticationError:
            logger.error("Batch aborted by an authentication failure")
            raise
        finally:
            self.is_generating = False

        entries = self._to_history_entries(request, images)
        self.current_batch = list(images)
        self.history.append(entries)
        return entries

    @staticmethod
    def _to_history_entries(
        request: GenerationRequest,
        images: List[str],
    ) -> List[GeneratedImage]:
        created_at = int(time.time() * 1000)
        prompt_used = request.prompt or HISTORY_PROMPT_FALLBACK
        return [
            GeneratedImage(
                id=f"{created_at}-{idx}",
                url=url,
                prompt_used=prompt_used,
                created_at=created_at,
                aspect_ratio=request.aspect_ratio,
                originating_request=request,
            )
            for idx, url in enumerate(images)
        ]

    # =========================================================
    # PROMPT OPTIMIZATION
    # =========================================================

    def optimize_prompt(self) -> str:
        """Replace the prompt with its optimized rewrite (fail-soft)."""
        self.prompt = self._optimizer(self.build_request(), self.prompt)
        return self.prompt

    # =========================================================
    # HISTORY ACTIONS
    # =========================================================

    def refine_from(self, entry_id: str) -> None:
        """Use a history entry's image as the reference for the next request."""
        entry = self._require_entry(entry_id)
        self.slots.set_reference(entry.url)

    def export(self, entry_id: str, directory: Optional[str] = None) -> str:
        entry = self._require_entry(entry_id)
        return export_image(entry.url, directory)

    def wipe_history(self) -> None:
        self.history.wipe()

    def _require_entry(self, entry_id: str) -> GeneratedImage:
        entry = self.history.get(entry_id)
        if entry is None:
            raise KeyError(entry_id)
        return entry

    def preset_ids(self) -> dict:
        """Return the catalog id of each selected preset (`None` when custom)."""
        return {
            kind: find_preset_id(kind, getattr(self, f"{kind}_preset"))
            for kind in CATALOGS
        }
