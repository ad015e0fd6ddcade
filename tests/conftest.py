import asyncio
import base64
import io

import pytest
from PIL import Image

from adstudio.core.request_types import GenerationRequest


def make_png_bytes(color=(200, 30, 30), size=(4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_png_data_url(color=(200, 30, 30)) -> str:
    encoded = base64.b64encode(make_png_bytes(color)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def fake_payload(tag) -> str:
    return f"data:image/png;base64,{tag}"


class FakeCredentials:
    def __init__(self, has_key=True):
        self.has_key = has_key
        self.prompts = 0

    def has_selected_api_key(self) -> bool:
        return self.has_key

    def open_select_key(self) -> None:
        self.prompts += 1


class ScriptedGenerator:
    """Single-image generator with per-call outcomes and in-flight tracking.

    `outcomes` maps the global call index to an exception instance to raise; every
    other call returns `fake_payload(<index>)`.
    """

    def __init__(self, outcomes=None, delays=None):
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.calls = 0
        self.requests = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request):
        index = self.calls
        self.calls += 1
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(index, 0))
            outcome = self.outcomes.get(index)
            if isinstance(outcome, BaseException):
                raise outcome
            return fake_payload(index)
        finally:
            self.in_flight -= 1


@pytest.fixture
def png_bytes():
    return make_png_bytes()


@pytest.fixture
def png_data_url():
    return make_png_data_url()


@pytest.fixture
def flash_request():
    return GenerationRequest(prompt="blue sneaker", tier="flash", batch_count=4)


@pytest.fixture
def credentials():
    return FakeCredentials()


@pytest.fixture
def no_pause(monkeypatch):
    """Record inter-chunk pauses instead of sleeping."""
    from adstudio.image import batch

    pauses = []

    async def record(seconds):
        pauses.append(seconds)

    monkeypatch.setattr(batch, "_pause", record)
    return pauses
