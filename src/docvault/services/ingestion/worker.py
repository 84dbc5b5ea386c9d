"""Background worker that periodically runs the ingestion sweep."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from docvault.services.ingestion.job import IngestionJob

logger = logging.getLogger(__name__)


class IngestionWorker:
    """Polls for pending documents every interval_seconds."""

    def __init__(self, job: IngestionJob, interval_seconds: int = 300) -> None:
        self._job = job
        self._interval = interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the worker."""
        if self._running:
            logger.warning("Ingestion worker already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("Ingestion worker started", extra={"interval_seconds": self._interval})

    async def stop(self) -> None:
        """Stop the worker."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Ingestion worker stopped")

    async def run_once(self) -> int:
        return await self._job.process_pending()

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in ingestion worker loop: {e}", exc_info=True)

            await asyncio.sleep(self._interval)
