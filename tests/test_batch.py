import asyncio

import pytest

from adstudio.core.request_types import GenerationRequest, Tier
from adstudio.image import batch
from adstudio.image.batch import generate_batch_images, plan_chunks
from adstudio.image.errors import (
    AuthenticationError,
    EmptyResponseError,
    ProviderError,
)

from conftest import ScriptedGenerator, fake_payload


def run(coroutine):
    return asyncio.run(coroutine)


@pytest.mark.parametrize(
    "count,tier,expected",
    [
        (1, Tier.FLASH, [1]),
        (1, Tier.PRO, [1]),
        (2, Tier.FLASH, [2]),
        (4, Tier.FLASH, [4]),
        (5, Tier.FLASH, [4, 1]),
        (8, Tier.FLASH, [4, 4]),
        (8, Tier.PRO, [2, 2, 2, 2]),
        (5, Tier.PRO, [2, 2, 1]),
        (9, Tier.FLASH, [4, 4, 1]),
    ],
)
def test_plan_chunks(count, tier, expected):
    assert plan_chunks(count, tier) == expected
    assert sum(expected) == count


@pytest.mark.parametrize("count", [0, -1, 2.0, True, "4"])
def test_invalid_count_rejected(count, flash_request):
    with pytest.raises(ValueError):
        plan_chunks(count, Tier.FLASH)
    with pytest.raises(ValueError):
        run(generate_batch_images(flash_request, count, generator=ScriptedGenerator()))


def test_single_image_is_one_direct_call(flash_request, no_pause):
    generator = ScriptedGenerator()

    images = run(generate_batch_images(flash_request, 1, generator=generator))

    assert images == [fake_payload(0)]
    assert generator.calls == 1
    assert no_pause == []


def test_full_success_keeps_issuance_order(no_pause):
    request = GenerationRequest(prompt="watch", tier=Tier.FLASH)
    # Later calls finish first; the output must still follow issuance order.
    generator = ScriptedGenerator(delays={0: 0.04, 1: 0.03, 2: 0.02, 3: 0.01})

    images = run(generate_batch_images(request, 6, generator=generator))

    assert images == [fake_payload(i) for i in range(6)]
    assert no_pause == [batch.CHUNK_PAUSE_SECONDS]


@pytest.mark.parametrize("tier,ceiling", [(Tier.FLASH, 4), (Tier.PRO, 2)])
def test_in_flight_calls_never_exceed_tier_ceiling(tier, ceiling, no_pause):
    request = GenerationRequest(prompt="lamp", tier=tier)
    generator = ScriptedGenerator(delays={i: 0.01 for i in range(8)})

    images = run(generate_batch_images(request, 8, generator=generator))

    assert len(images) == 8
    assert generator.max_in_flight == ceiling
    assert len(no_pause) == 8 // ceiling - 1


def test_request_passed_unchanged_to_every_call(flash_request, no_pause):
    generator = ScriptedGenerator()

    run(generate_batch_images(flash_request, 5, generator=generator))

    assert all(request is flash_request for request in generator.requests)


def test_blue_sneaker_partial_success(no_pause):
    # Flash, count 5 -> chunks [4, 1]; the fourth call of chunk one fails.
    request = GenerationRequest(prompt="blue sneaker", tier=Tier.FLASH)
    generator = ScriptedGenerator(outcomes={3: EmptyResponseError("EMPTY_RESPONSE")})

    images = run(generate_batch_images(request, 5, generator=generator))

    assert images == [fake_payload(0), fake_payload(1), fake_payload(2), fake_payload(4)]
    assert generator.calls == 5
    assert no_pause == [batch.CHUNK_PAUSE_SECONDS]


def test_auth_failure_aborts_remaining_chunks(no_pause):
    request = GenerationRequest(prompt="perfume", tier=Tier.FLASH)
    generator = ScriptedGenerator(outcomes={2: AuthenticationError("403 forbidden")})

    with pytest.raises(AuthenticationError):
        run(generate_batch_images(request, 12, generator=generator))

    # The first chunk settles completely; nothing after it is issued.
    assert generator.calls == 4
    assert no_pause == []


def test_auth_failure_wins_over_earlier_successes(no_pause):
    request = GenerationRequest(prompt="perfume", tier=Tier.PRO)
    generator = ScriptedGenerator(outcomes={3: AuthenticationError("401")})

    with pytest.raises(AuthenticationError):
        run(generate_batch_images(request, 6, generator=generator))

    assert generator.calls == 4
    assert no_pause == [batch.CHUNK_PAUSE_SECONDS]


def test_total_failure_raises_first_recorded_failure(no_pause):
    request = GenerationRequest(prompt="mug", tier=Tier.PRO)
    generator = ScriptedGenerator(
        outcomes={i: ProviderError(f"fail-{i}") for i in range(4)}
    )

    with pytest.raises(ProviderError, match="fail-0"):
        run(generate_batch_images(request, 4, generator=generator))

    assert generator.calls == 4


def test_single_call_failure_propagates(flash_request, no_pause):
    generator = ScriptedGenerator(outcomes={0: ProviderError("boom")})

    with pytest.raises(ProviderError, match="boom"):
        run(generate_batch_images(flash_request, 1, generator=generator))


def test_falsy_result_counts_as_empty_response(flash_request, no_pause):
    async def blank(request):
        return ""

    with pytest.raises(EmptyResponseError):
        run(generate_batch_images(flash_request, 2, generator=blank))


def test_unexpected_exception_is_an_ordinary_failure(flash_request, no_pause):
    generator = ScriptedGenerator(outcomes={0: KeyError("candidates")})

    images = run(generate_batch_images(flash_request, 2, generator=generator))

    assert images == [fake_payload(1)]
