"""Rate-limited outbound calls with fixed-delay retry."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_fixed,
)

from ..exceptions import DiscoveryError
from ..models import Image, sort_images

if TYPE_CHECKING:
    from .registry_client import Catalog

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.debug(f"Attempt {retry_state.attempt_number} failed, retrying: {exc}")


class RateLimitedFetcher:
    """Bounds simultaneously in-flight calls and retries failures.

    A call holds one slot for its whole retry sequence and releases it on
    success, failure or cancellation.
    """

    def __init__(
        self,
        limit: int,
        attempts: int = 3,
        delay: float = 1.0,
        cancelled: asyncio.Event | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            limit: Maximum number of concurrent calls
            attempts: Default attempt count per call
            delay: Default delay between attempts in seconds
            cancelled: Event that stops further retry attempts once set
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1: {limit}")
        self.limit = limit
        self.attempts = attempts
        self.delay = delay
        self.cancelled = cancelled or asyncio.Event()
        self._slots = asyncio.Semaphore(limit)
        self.in_flight = 0
        self.peak = 0

    async def call(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        attempts: int | None = None,
        delay: float | None = None,
    ) -> T:
        """Run ``fn(*args)`` inside a slot, retrying on failure.

        Args:
            fn: Coroutine function to call
            attempts: Override of the default attempt count
            delay: Override of the default retry delay

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The last error once attempts are exhausted
        """
        async with self._slots:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            try:
                return await self.retry(fn, *args, attempts=attempts, delay=delay)
            finally:
                self.in_flight -= 1

    async def retry(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        attempts: int | None = None,
        delay: float | None = None,
    ) -> T:
        """Retry ``fn(*args)`` without taking a slot."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts or self.attempts)
            | stop_when_event_set(self.cancelled),
            wait=wait_fixed(self.delay if delay is None else delay),
            retry=retry_if_exception_type(Exception),
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn(*args)
        raise AssertionError("unreachable")


async def discover_images(
    catalog: "Catalog", fetcher: RateLimitedFetcher, namespace: str
) -> list[Image]:
    """List every tagged image under a namespace.

    Failing to list names is fatal; a name whose tags cannot be listed is
    logged and dropped.

    Returns:
        Deduplicated images sorted by string form

    Raises:
        DiscoveryError: If the image names cannot be listed
    """
    logger.info(f"Listing images in {catalog.registry}/{namespace}...")
    try:
        names = await fetcher.call(catalog.list_names, namespace)
    except Exception as e:
        raise DiscoveryError(
            f"Failed to list images, namespace: {namespace}, error: {e}"
        ) from e

    async def tags_for(name: str) -> list[Image]:
        repository = f"{namespace}/{name}" if namespace else name
        logger.debug(f"Listing tags of {catalog.registry}/{repository}")
        try:
            tags = await fetcher.call(catalog.list_tags, repository)
        except Exception as e:
            logger.error(
                f"Failed to list tags, namespace: {namespace}, image: {name}, error: {e}"
            )
            return []
        return [
            Image(repo=catalog.registry, user=namespace, name=name, tag=tag)
            for tag in tags
        ]

    # gather keeps results in name order regardless of completion order
    results = await asyncio.gather(*(tags_for(name) for name in names))
    images = sort_images(image for tagged in results for image in tagged)
    logger.info(f"Discovered {len(images)} images from {len(names)} names")
    return images
