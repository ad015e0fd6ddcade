"""Provider/runtime configuration for the image and text-model layers.

Architectural role:
    Centralizes model selection, endpoint templates, pacing constants, and
    credential lookup for `adstudio.image` and `adstudio.llm`.

Model call flow integration:
    - `image.client.send_image_request` consumes `GEMINI_URL_TEMPLATE`,
      `IMAGE_TIMEOUT_SECONDS` and the key resolved by `load_gemini_key`.
    - `image.service` maps a tier to `IMAGE_MODELS`.
    - `image.batch` reads `TIER_CHUNK_SIZES` and `CHUNK_PAUSE_SECONDS`.
    - `llm.client.send_request` consumes `OPTIMIZER_MODEL` and
      `OPTIMIZER_TIMEOUT_SECONDS`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are resolved
    at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None`; the image client turns it into an
    authentication failure, the optimizer into a fail-soft no-op.
"""

import logging
import os

from dotenv import load_dotenv

from adstudio.core.request_types import Tier

load_dotenv()


logger = logging.getLogger(__name__)


GEMINI_KEY_FILE = os.getenv("GEMINI_KEY_FILE", "config/gemini.key")

GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:generateContent"
)

# Image model per tier.
IMAGE_MODELS = {
    Tier.FLASH: os.getenv("FLASH_IMAGE_MODEL", "gemini-2.5-flash-image"),
    Tier.PRO: os.getenv("PRO_IMAGE_MODEL", "gemini-3-pro-image-preview"),
}

# Text model used for prompt optimization.
OPTIMIZER_MODEL = os.getenv("OPTIMIZER_MODEL", "gemini-3-flash-preview")

IMAGE_TIMEOUT_SECONDS = float(os.getenv("IMAGE_TIMEOUT_SECONDS", "120"))
OPTIMIZER_TIMEOUT_SECONDS = float(os.getenv("OPTIMIZER_TIMEOUT_SECONDS", "60"))

# Per-tier concurrency ceiling of the provider. One batch chunk never exceeds it.
TIER_CHUNK_SIZES = {
    Tier.FLASH: 4,
    Tier.PRO: 2,
}

# Pause between consecutive chunks of one batch.
CHUNK_PAUSE_SECONDS = 0.3


def key_env_name(path):
    """Return the environment variable that overrides key file `path`.

    Example:
        `config/gemini.key` -> `GEMINI_API_KEY`
    """
    return os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
        - Empty file returns `None`.
    """
    if not path:
        return None
    env_value = os.getenv(key_env_name(path))
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def load_gemini_key():
    """Return the active Gemini API key, or `None` when none is configured."""
    return load_key(GEMINI_KEY_FILE)


class EnvCredentialSelector:
    """Credential side-channel backed by the process environment.

    `has_selected_api_key` reports whether a Gemini key resolves. `open_select_key`
    asks `prompt` (when given) for a replacement key and installs it under the
    environment variable `load_key` reads for `GEMINI_KEY_FILE` (`GEMINI_API_KEY`
    by default) for the rest of the process lifetime.
    """

    def __init__(self, prompt=None):
        self._prompt = prompt

    def has_selected_api_key(self) -> bool:
        return bool(load_gemini_key())

    def open_select_key(self) -> None:
        if self._prompt is None:
            logger.warning(
                "No credential prompt available; set %s or %s",
                key_env_name(GEMINI_KEY_FILE),
                GEMINI_KEY_FILE,
            )
            return

        key = (self._prompt() or "").strip()
        if key:
            os.environ[key_env_name(GEMINI_KEY_FILE)] = key
