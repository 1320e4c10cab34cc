"""Periodic retention cleanup of old face records."""
import asyncio
from datetime import timedelta
from typing import Optional

from facecatalog.core.config import settings
from facecatalog.core.exceptions import FaceCatalogError
from facecatalog.core.logging import get_logger
from facecatalog.domain.interfaces.storage.record_store import FaceRecordStore

logger = get_logger(__name__)


class RetentionWorker:
    """
    Background task deleting records older than the retention period.

    Usage:
        worker = RetentionWorker(store, retention_days=30)
        await worker.start()
        ...
        await worker.stop()
    """

    def __init__(
        self,
        store: FaceRecordStore,
        retention_days: Optional[int] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.store = store
        self.retention = timedelta(
            days=settings.RETENTION_DAYS if retention_days is None else retention_days
        )
        self.interval_seconds = interval_seconds or settings.RETENTION_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None
        self.runs = 0
        self.total_deleted = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Run one cleanup pass and return the number of deleted records."""
        deleted = await self.store.cleanup(self.retention)
        self.runs += 1
        self.total_deleted += deleted
        logger.debug(
            "Retention pass completed",
            run=self.runs,
            deleted=deleted
        )
        return deleted

    async def start(self):
        """Start the periodic cleanup task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Retention worker started",
            retention_days=self.retention.days,
            interval_seconds=self.interval_seconds
        )

    async def stop(self):
        """Cancel the cleanup task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(
            "Retention worker stopped",
            runs=self.runs,
            total_deleted=self.total_deleted
        )

    async def _run(self):
        while True:
            try:
                await self.run_once()
            except FaceCatalogError as e:
                # Keep the schedule; the next pass retries
                logger.error("Retention cleanup failed", error=str(e))
            await asyncio.sleep(self.interval_seconds)
