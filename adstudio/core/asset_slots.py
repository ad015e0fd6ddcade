"""Bounded asset collections feeding every generation request.

Purpose of this abstraction:
    Hold the product and background image lists (each capped at
    `MAX_SLOT_IMAGES`) and the single optional reference image. The cap is a soft
    ceiling: overflow is dropped silently, never reported as an error.

Interaction with the session:
    `engine.StudioSession.build_request` reads `snapshot()` once per submission. The
    snapshot is made of tuples, so later slot mutation never reaches a request
    that is already in flight.

Decoding:
    Raw inputs are decoded through `file_input_manager.load_image_payload` (or an
    injected decoder). Only the inputs that fit the remaining capacity are decoded.
"""

import logging
from enum import Enum

from adstudio.api.multimodal.file_input_manager import load_image_payload


logger = logging.getLogger(__name__)


MAX_SLOT_IMAGES = 5


class AssetSlot(str, Enum):
    PRODUCT = "product"
    BACKGROUND = "background"


class AssetSlots:
    """Product, background, and reference image state for one session."""

    def __init__(self, decoder=None):
        self._decoder = decoder or load_image_payload
        self._images = {
            AssetSlot.PRODUCT: [],
            AssetSlot.BACKGROUND: [],
        }
        self._reference = None

    def add(self, images, slot) -> int:
        """Decode and append incoming images to `slot`, up to the slot capacity.

        Args:
            images: Iterable of raw image inputs accepted by the decoder.
            slot: `AssetSlot` or its string value.

        Returns:
            Number of images actually appended.

        Important behavior:
            - Incoming images beyond `MAX_SLOT_IMAGES - len(current)` are dropped
              before decoding.
            - All accepted inputs are decoded before any is appended, so a decode
              failure leaves the slot unchanged.

        Raises:
            ValueError: Unknown slot, or an accepted input failed to decode.
        """
        current = self._images[AssetSlot(slot)]
        remaining = max(0, MAX_SLOT_IMAGES - len(current))

        incoming = list(images)
        accepted = incoming[:remaining]
        if len(incoming) > len(accepted):
            logger.info(
                "Dropping %d image(s) beyond %s slot capacity",
                len(incoming) - len(accepted),
                AssetSlot(slot).value,
            )

        payloads = [self._decoder(item) for item in accepted]
        current.extend(payloads)
        return len(payloads)

    def remove(self, index: int, slot) -> str:
        """Remove and return the payload at `index`; order of the rest is kept.

        Raises:
            IndexError: `index` is out of range.
        """
        current = self._images[AssetSlot(slot)]
        if index < 0 or index >= len(current):
            raise IndexError(f"No {AssetSlot(slot).value} image at index {index}")
        return current.pop(index)

    def set_reference(self, image) -> None:
        """Replace the reference slot; `None` or an empty value clears it.

        Already-encoded data URLs are stored as-is, other inputs are decoded.
        """
        if not image:
            self._reference = None
            return

        if isinstance(image, str) and image.startswith("data:"):
            self._reference = image
            return

        self._reference = self._decoder(image)

    def images(self, slot) -> tuple:
        return tuple(self._images[AssetSlot(slot)])

    @property
    def reference(self):
        return self._reference

    def snapshot(self):
        """Return `(product_images, background_images, reference_image)` as immutable values."""
        return (
            tuple(self._images[AssetSlot.PRODUCT]),
            tuple(self._images[AssetSlot.BACKGROUND]),
            self._reference,
        )

    def restore(self, product_images, background_images, reference_image) -> None:
        """Replace all slots with already-encoded payloads (quick retry path)."""
        self._images[AssetSlot.PRODUCT] = list(product_images)[:MAX_SLOT_IMAGES]
        self._images[AssetSlot.BACKGROUND] = list(background_images)[:MAX_SLOT_IMAGES]
        self._reference = reference_image

    def clear(self) -> None:
        for images in self._images.values():
            images.clear()
        self._reference = None
