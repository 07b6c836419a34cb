"""Sync orchestration: discover, partition, dispatch, report."""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Sequence

from ..batch import partition
from ..exceptions import PersistError, PoolClosedError
from ..manifests import Fingerprint, ManifestCache
from ..models import Image, SyncOutcome, SyncStatus, destination_image, sort_images
from ..report import ReportSummary, Reporter, Sink
from .fetcher import RateLimitedFetcher, discover_images
from .pool import WorkerPool
from .types import SyncOption

if TYPE_CHECKING:
    from ..copier import Copier
    from ..store import ManifestStore
    from .registry_client import Catalog, ManifestFetcher

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Mirrors the images of one namespace into the destination registry.

    One run goes through Discover, Partition, Dispatch and Drain. Each image
    is handled by exactly one pool task, which fetches the current manifest,
    skips the image if it matches the cached one, and otherwise copies it and
    records the new manifest.
    """

    def __init__(
        self,
        catalog: "Catalog",
        manifests: "ManifestFetcher",
        copier: "Copier",
        store: "ManifestStore",
        option: SyncOption,
        cache: Optional[ManifestCache] = None,
        sink: Optional[Sink] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            catalog: Source of image names and tags
            manifests: Source of current image manifests
            copier: Performs the actual transfer
            store: Persistence for fingerprints
            option: Run options, validated here
            cache: Fingerprint cache; a fresh one is warmed from ``store``
                when omitted
            sink: Receives reported outcomes when reporting is enabled

        Raises:
            ConfigError: If ``option`` is invalid
        """
        self.option = option.validate()
        self.catalog = catalog
        self.manifests = manifests
        self.copier = copier
        self.store = store
        self.cache = cache
        self.sink = sink
        self.cancelled = asyncio.Event()
        self.fetcher = RateLimitedFetcher(
            limit=self.option.query_limit,
            attempts=self.option.http_retry,
            delay=self.option.http_retry_delay,
            cancelled=self.cancelled,
        )
        self.pool: Optional[WorkerPool] = None

    def cancel(self) -> None:
        """Stop the current run; images not yet started are abandoned."""
        if not self.cancelled.is_set():
            logger.warning("Sync cancelled, abandoning images not yet started")
        self.cancelled.set()
        if self.pool is not None:
            self.pool.cancel()

    def reset(self) -> None:
        """Start a new run with a fresh cancel token."""
        self.cancelled = asyncio.Event()
        self.fetcher.cancelled = self.cancelled
        self.pool = None

    async def images(self) -> list[Image]:
        """Discover all images of the configured namespace.

        Raises:
            DiscoveryError: If the image names cannot be listed
        """
        return await discover_images(self.catalog, self.fetcher, self.option.namespace)

    async def run(self, images: Optional[Sequence[Image]] = None) -> ReportSummary:
        """Run a full sync.

        Args:
            images: Images to sync; discovered from the catalog when omitted

        Returns:
            Summary of the outcomes emitted during the run

        Raises:
            DiscoveryError: If discovery fails
        """
        self.reset()
        loop = asyncio.get_running_loop()
        deadline = None
        if self.option.sync_timeout:
            deadline = loop.call_later(self.option.sync_timeout, self.cancel)

        try:
            if images is None:
                images = await self.images()
            return await self.sync(images)
        finally:
            if deadline is not None:
                deadline.cancel()

    async def sync(self, images: Sequence[Image]) -> ReportSummary:
        """Partition and dispatch images to the worker pool."""
        option = self.option
        batch = partition(sort_images(images), option.batch_size, option.batch_number)
        logger.info(f"Starting sync images, image total: {len(batch)}")

        if self.cache is None:
            self.cache = ManifestCache()
            await self.cache.warm(self.store, batch)

        reporter = Reporter(
            enabled=option.report,
            level=option.report_level,
            maxsize=option.limit,
            sink=self.sink,
        )
        async with reporter:
            self.pool = WorkerPool(option.limit)
            if self.cancelled.is_set():
                self.pool.cancel()
            async with self.pool:
                for image in batch:
                    if self.cancelled.is_set():
                        break
                    try:
                        await self.pool.submit(self._task(image, reporter))
                    except PoolClosedError as e:
                        logger.error(f"Failed to submit {image}: {e}")
                        break
                await self.pool.join()
            finished = reporter.summary.total
            logger.info(
                f"Sync finished, images: {finished}, abandoned: {len(batch) - finished}"
            )
        return reporter.summary

    def _task(self, image: Image, reporter: Reporter):
        async def run() -> None:
            outcome = await self.process(image)
            if outcome is not None:
                await reporter.emit(outcome)

        return run

    async def process(self, image: Image) -> Optional[SyncOutcome]:
        """Sync one image.

        Returns:
            The outcome, or None if the run was cancelled before any work
        """
        if self.cancelled.is_set():
            return None
        logger.debug(f"Process image: {image}")

        try:
            fingerprint = await self.fetcher.call(
                self.manifests.fetch,
                image,
                attempts=self.option.fetch_retry,
                delay=self.option.fetch_retry_delay,
            )
        except Exception as e:
            return SyncOutcome(image, SyncStatus.FAILED_FETCH, str(e))

        if not self.cache.should_sync(image, fingerprint):
            return SyncOutcome(image, SyncStatus.SKIPPED_UNCHANGED)

        if not self.option.manifests_only:
            if self.cancelled.is_set():
                return None
            try:
                await self.fetcher.retry(
                    self.copy,
                    image,
                    attempts=self.option.sync_retry,
                    delay=self.option.sync_retry_delay,
                )
            except Exception as e:
                return SyncOutcome(image, SyncStatus.FAILED_COPY, str(e))

        return await self.persist(image, fingerprint)

    async def copy(self, image: Image) -> None:
        destination = destination_image(image, self.option.user, self.option.kubeadm)
        logger.info(f"Syncing {image} => {destination}")
        await self.copier.copy(
            image, destination, self.option.credentials, self.option.timeout
        )

    async def persist(self, image: Image, fingerprint: Fingerprint) -> SyncOutcome:
        """Record a fingerprint after a successful transfer.

        A failed write does not undo a completed copy; it only fails the
        image when nothing was copied.
        """
        try:
            await self.store.save(image, fingerprint)
        except PersistError as e:
            logger.error(f"Failed to store image [{image}] manifests: {e}")
            if self.option.manifests_only:
                return SyncOutcome(image, SyncStatus.FAILED_PERSIST, str(e))
            # copied images mask the next run even without a stored manifest
            self.cache.put(image, fingerprint)
            return SyncOutcome(image, SyncStatus.SYNCED, f"manifest not stored: {e}")
        self.cache.put(image, fingerprint)
        return SyncOutcome(image, SyncStatus.SYNCED)
