"""Batch generation orchestrator.

Role in pipeline:
    Turns one "generate N variations" request into sequential chunks of concurrent
    single-image calls, aggregates successes in issuance order, and decides the
    terminal outcome of the batch.

Chunking strategy:
    - `count == 1`: one direct call, no chunking and no pacing.
    - Otherwise chunks of `TIER_CHUNK_SIZES[tier]` (Pro: 2, Flash: 4); the last
      chunk may be smaller.
    - Chunks run strictly one after another. Inside a chunk every call is issued
      before any is awaited, and all calls settle before the next chunk starts.
    - A fixed `CHUNK_PAUSE_SECONDS` pause separates consecutive chunks.

Outcome rules:
    - An `AuthenticationError` anywhere aborts the batch after its chunk settles and
      is raised, even when other calls succeeded.
    - Other per-call failures are only surfaced when nothing succeeded; then the
      first recorded failure (chunk order, then issuance order) is raised.
    - Partial success returns the successes without any failure indication.

Determinism:
    `asyncio.gather` returns results in argument order, so the output order depends
    only on issuance order, never on completion order.

Known limitation:
    There is no orchestrator-level timeout. A hung call delays its chunk until the
    transport timeout fires.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from adstudio.core.request_types import GenerationRequest, Tier
from adstudio.image.errors import AuthenticationError, EmptyResponseError
from adstudio.image.service import generate_commercial_image
from adstudio.llm.provider_config import CHUNK_PAUSE_SECONDS, TIER_CHUNK_SIZES


logger = logging.getLogger(__name__)

ImageGenerator = Callable[[GenerationRequest], Awaitable[str]]


def chunk_size_for(tier: Tier) -> int:
    """Return the per-chunk concurrency ceiling for `tier`."""
    return TIER_CHUNK_SIZES[Tier(tier)]


def plan_chunks(count: int, tier: Tier) -> List[int]:
    """Return the sizes of the chunks a batch of `count` images is split into.

    Example:
        `plan_chunks(5, Tier.FLASH) == [4, 1]`
    """
    _validate_count(count)
    if count == 1:
        return [1]

    size = chunk_size_for(tier)
    return [min(size, count - start) for start in range(0, count, size)]


def _validate_count(count: int) -> None:
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValueError(f"count must be a positive integer, got {count!r}")


async def _pause(seconds: float) -> None:
    """Inter-chunk pacing delay."""
    await asyncio.sleep(seconds)


async def _call_once(generate: ImageGenerator, request: GenerationRequest) -> str:
    image = await generate(request)
    if not image:
        raise EmptyResponseError("EMPTY_RESPONSE")
    return image


async def _run_chunk(
    generate: ImageGenerator,
    request: GenerationRequest,
    size: int,
) -> list:
    """Issue `size` concurrent calls and wait for all of them to settle.

    Returns:
        One entry per call in issuance order: the image payload or the exception.
    """
    tasks = [_call_once(generate, request) for _ in range(size)]
    settled = await asyncio.gather(*tasks, return_exceptions=True)

    for item in settled:
        if isinstance(item, asyncio.CancelledError):
            raise item

    return settled


async def generate_batch_images(
    request: GenerationRequest,
    count: int,
    generator: Optional[ImageGenerator] = None,
    pause_seconds: float = CHUNK_PAUSE_SECONDS,
) -> List[str]:
    """Generate `count` images for `request` within the tier's provider limits.

    Args:
        request: Immutable request snapshot; never mutated here.
        count: Desired number of images; any positive integer.
        generator: Single-image coroutine function. Defaults to
            `service.generate_commercial_image`.
        pause_seconds: Delay between consecutive chunks.

    Returns:
        Successful image payloads in chunk-then-issuance order. May hold fewer
        than `count` entries when some calls failed.

    Raises:
        ValueError: `count` is not a positive integer.
        AuthenticationError: Any call was rejected as unauthorized.
        ImageGenerationError: Every call failed; the first recorded failure.
    """
    _validate_count(count)
    generate = generator or generate_commercial_image

    if count == 1:
        return [await _call_once(generate, request)]

    chunk_sizes = plan_chunks(count, request.tier)
    results: List[str] = []
    failures: List[BaseException] = []

    for chunk_index, size in enumerate(chunk_sizes):
        settled = await _run_chunk(generate, request, size)

        for item in settled:
            if isinstance(item, BaseException):
                logger.warning(
                    "Chunk %d/%d call failed: %s: %s",
                    chunk_index + 1,
                    len(chunk_sizes),
                    type(item).__name__,
                    item,
                )
                failures.append(item)
            else:
                results.append(item)

        auth_failure = next(
            (failure for failure in failures if isinstance(failure, AuthenticationError)),
            None,
        )
        if auth_failure is not None:
            logger.error(
                "Authentication failure in chunk %d/%d; aborting batch with %d success(es)",
                chunk_index + 1,
                len(chunk_sizes),
                len(results),
            )
            raise auth_failure

        if chunk_index < len(chunk_sizes) - 1:
            await _pause(pause_seconds)

    if not results and failures:
        raise failures[0]

    if failures:
        logger.info("Batch finished with %d/%d image(s)", len(results), count)

    return results
