import asyncio

import pytest

from adstudio.core.asset_slots import AssetSlots
from adstudio.core.engine import (
    HISTORY_PROMPT_FALLBACK,
    EmptyRequestError,
    GenerationInProgressError,
    StudioSession,
)
from adstudio.core.request_types import AspectRatio, Tier
from adstudio.image.errors import AuthenticationError, ProviderError

from conftest import FakeCredentials, ScriptedGenerator, fake_payload, make_png_data_url


def run(coroutine):
    return asyncio.run(coroutine)


def make_session(generator=None, credentials=None):
    return StudioSession(
        slots=AssetSlots(decoder=lambda item: f"data:image/png;base64,{item}"),
        credentials=credentials or FakeCredentials(),
        generator=generator or ScriptedGenerator(),
        optimizer=lambda request, draft: f"optimized {draft}",
    )


def test_empty_request_rejected(no_pause):
    session = make_session()

    with pytest.raises(EmptyRequestError):
        run(session.generate())

    assert session._generator.calls == 0
    assert session.history.entries() == []


def test_generate_fills_batch_and_history(no_pause):
    session = make_session()
    session.prompt = "blue sneaker"
    session.set_batch_count(2)

    entries = run(session.generate())

    assert [entry.url for entry in entries] == [fake_payload(0), fake_payload(1)]
    assert session.current_batch == [fake_payload(0), fake_payload(1)]
    assert session.history.entries() == entries
    created_at = entries[0].created_at
    assert [entry.id for entry in entries] == [f"{created_at}-0", f"{created_at}-1"]
    assert all(entry.prompt_used == "blue sneaker" for entry in entries)
    assert not session.is_generating


def test_asset_only_request_uses_history_label(no_pause):
    session = make_session()
    session.slots.add(["P"], "product")
    session.set_batch_count(1)

    entries = run(session.generate())

    assert entries[0].prompt_used == HISTORY_PROMPT_FALLBACK
    assert entries[0].originating_request.prompt == ""


def test_request_is_snapshotted_before_the_batch(no_pause):
    session = make_session()
    session.prompt = "lamp"
    session.slots.add(["P0"], "product")

    async def scenario():
        task = asyncio.ensure_future(session.generate())
        await asyncio.sleep(0)
        session.slots.add(["P1"], "product")
        session.prompt = "changed"
        return await task

    entries = run(scenario())

    request = entries[0].originating_request
    assert request.prompt == "lamp"
    assert request.product_images == ("data:image/png;base64,P0",)


def test_quick_retry_replays_exact_request(no_pause):
    generator = ScriptedGenerator()
    session = make_session(generator=generator)
    session.prompt = "perfume"
    session.select_preset("style", "luxury")
    session.set_aspect_ratio("9:16")
    session.slots.add(["P0"], "product")
    session.set_batch_count(1)
    first = run(session.generate())[0]

    session.prompt = "something else"
    session.select_preset("style", "none")
    session.set_aspect_ratio("1:1")
    session.slots.clear()

    run(session.quick_retry(first.id))

    assert generator.requests[-1] == first.originating_request
    assert session.build_request() == first.originating_request
    assert session.aspect_ratio == AspectRatio.STORY
    assert session.preset_ids()["style"] == "luxury"
    assert len(session.history) == 2


def test_quick_retry_unknown_entry():
    with pytest.raises(KeyError):
        run(make_session().quick_retry("nope"))


def test_auth_failure_leaves_state_and_does_not_prompt(no_pause):
    credentials = FakeCredentials()
    generator = ScriptedGenerator(outcomes={0: AuthenticationError("403")})
    session = make_session(generator=generator, credentials=credentials)
    session.prompt = "watch"

    with pytest.raises(AuthenticationError):
        run(session.generate())

    assert session.history.entries() == []
    assert session.current_batch == []
    assert credentials.prompts == 0
    assert not session.is_generating

    session.reselect_credentials()
    assert credentials.prompts == 1


def test_partial_success_is_silent(no_pause):
    credentials = FakeCredentials()
    generator = ScriptedGenerator(outcomes={1: ProviderError("busy")})
    session = make_session(generator=generator, credentials=credentials)
    session.prompt = "chair"

    entries = run(session.generate())

    assert len(entries) == 3
    assert credentials.prompts == 0


def test_total_failure_keeps_previous_batch(no_pause):
    generator = ScriptedGenerator()
    session = make_session(generator=generator)
    session.prompt = "mug"
    session.set_batch_count(1)
    run(session.generate())
    previous = list(session.current_batch)

    generator.outcomes = {1: ProviderError("down")}
    with pytest.raises(ProviderError):
        run(session.generate())

    assert session.current_batch == previous
    assert len(session.history) == 1


def test_concurrent_submit_rejected(no_pause):
    session = make_session(generator=ScriptedGenerator(delays={0: 0.05}))
    session.prompt = "bag"
    session.set_batch_count(1)

    async def scenario():
        first = asyncio.ensure_future(session.generate())
        await asyncio.sleep(0)
        with pytest.raises(GenerationInProgressError):
            await session.generate()
        return await first

    assert len(run(scenario())) == 1


@pytest.mark.parametrize("has_key,expected_prompts", [(False, 1), (True, 0)])
def test_switch_to_pro_checks_credentials(has_key, expected_prompts):
    credentials = FakeCredentials(has_key=has_key)
    session = make_session(credentials=credentials)

    session.set_tier("pro")
    session.set_tier(Tier.FLASH)

    assert session.tier == Tier.FLASH
    assert credentials.prompts == expected_prompts


def test_invalid_settings_rejected():
    session = make_session()

    with pytest.raises(ValueError):
        session.select_preset("style", "baroque")
    with pytest.raises(ValueError):
        session.set_aspect_ratio("2:1")
    with pytest.raises(ValueError):
        session.set_batch_count(0)
    with pytest.raises(ValueError):
        session.set_tier("ultra")

    assert session.style_preset == ""
    assert session.batch_count == 4


def test_optimize_prompt_replaces_prompt():
    session = make_session()
    session.prompt = "shoe"

    assert session.optimize_prompt() == "optimized shoe"
    assert session.prompt == "optimized shoe"


def test_refine_and_export(no_pause, tmp_path):
    image = make_png_data_url()

    async def png_generator(request):
        return image

    session = make_session(generator=png_generator)
    session.prompt = "bottle"
    session.set_batch_count(1)
    entry = run(session.generate())[0]

    session.refine_from(entry.id)
    assert session.build_request().is_refinement
    assert session.slots.reference == image

    path = session.export(entry.id, str(tmp_path))
    assert path.startswith(str(tmp_path))

    session.wipe_history()
    with pytest.raises(KeyError):
        session.refine_from(entry.id)


def test_retry_during_running_batch_keeps_settings(no_pause):
    generator = ScriptedGenerator()
    session = make_session(generator=generator)
    session.prompt = "old"
    session.set_batch_count(1)
    old_entry = run(session.generate())[0]

    generator.delays = {1: 0.05}
    session.prompt = "new draft"
    session.set_tier(Tier.PRO)
    session.select_preset("theme", "urban")
    session.slots.add(["P0"], "product")

    async def scenario():
        running = asyncio.ensure_future(session.generate())
        await asyncio.sleep(0)
        with pytest.raises(GenerationInProgressError):
            await session.quick_retry(old_entry.id)
        return await running

    entries = run(scenario())

    assert session.prompt == "new draft"
    assert session.tier == Tier.PRO
    assert session.preset_ids()["theme"] == "urban"
    assert session.slots.images("product") == ("data:image/png;base64,P0",)
    assert entries[0].originating_request.prompt == "new draft"
    assert generator.calls == 2
