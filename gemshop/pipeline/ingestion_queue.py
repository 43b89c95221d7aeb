"""Background ingestion queue.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# The upload endpoint must answer as soon as the file is saved, so
# ingestion runs out of band:
#   - submit() enqueues an IngestionJob and returns immediately
#   - a fixed pool of worker tasks (started/stopped with the app) pulls
#     jobs and calls IngestionService.ingest_file
#   - each job is isolated: ingest_file reports failures as a result,
#     and anything that still escapes is logged and the worker continues
#   - join() waits until every submitted job has been processed
#
# Results are kept in a bounded in-memory history for the CLI and tests.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from gemshop.models.rag import IngestionResult
from gemshop.utils.logging import bind_context, clear_context

if TYPE_CHECKING:
    from gemshop.services.ingestion.ingestion_service import IngestionService

logger = structlog.get_logger(logger_name=__name__)

_HISTORY_SIZE = 100


@dataclass(frozen=True)
class IngestionJob:
    file_path: Path
    filename: str
    tenant_id: str | None = None


class IngestionQueue:
    """Fixed-size worker pool consuming ingestion jobs.

    Parameters
    ----------
    ingestion_service:
        Shared service that processes each file.
    workers:
        Number of concurrent worker tasks (minimum 1).
    """

    def __init__(self, ingestion_service: IngestionService, workers: int = 2) -> None:
        self._service = ingestion_service
        self._worker_count = max(1, workers)
        self._queue: asyncio.Queue[IngestionJob] = asyncio.Queue()
        self._workers: list[asyncio.Task[None]] = []
        self._results: deque[IngestionResult] = deque(maxlen=_HISTORY_SIZE)

    # ─── Lifecycle ─────────────────────────────────────────────────────

    def start(self) -> None:
        """Spawn the worker tasks.  Must be called from a running event loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"ingestion-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("ingestion_queue_started", workers=self._worker_count)

    async def stop(self) -> None:
        """Cancel the workers.  Jobs still queued are dropped."""
        if not self._workers:
            return
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("ingestion_queue_stopped", pending=self._queue.qsize())

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    # ─── Jobs ──────────────────────────────────────────────────────────

    def submit(
        self,
        file_path: str | Path,
        filename: str,
        tenant_id: str | None = None,
    ) -> IngestionJob:
        """Enqueue a file for ingestion without waiting for it."""
        job = IngestionJob(file_path=Path(file_path), filename=filename, tenant_id=tenant_id)
        self._queue.put_nowait(job)
        logger.info("ingestion_job_queued", filename=filename, pending=self._queue.qsize())
        return job

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def results(self) -> list[IngestionResult]:
        """Most recent results, oldest first."""
        return list(self._results)

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            bind_context(filename=job.filename, worker=index)
            try:
                result = await self._service.ingest_file(
                    job.file_path, job.filename, tenant_id=job.tenant_id
                )
                self._results.append(result)
                logger.info(
                    "ingestion_job_finished",
                    status=result.status.value,
                    chunks=result.chunks_created,
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001 -- a worker must outlive any single job
                logger.exception("ingestion_job_crashed", error=str(exc))
            finally:
                clear_context()
                self._queue.task_done()
