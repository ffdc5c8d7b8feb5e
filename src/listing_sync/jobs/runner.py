"""
Single-worker background job runner.

Jobs are drained in FIFO order by one daemon thread; only one job runs at a
time. Every dequeued job ends succeeded or failed, and the worker keeps
draining regardless of failures.
"""

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, Optional

from ..core.logging import CorrelationContext, log_with_context
from ..core.types import StoreScope, SyncJob
from .preflight import PreflightService


logger = logging.getLogger(__name__)


class SyncJobRunner:
    """
    FIFO job runner with one worker thread.

    Example:
        >>> runner = SyncJobRunner(repo, PreflightService(repo, gateways))
        >>> job = runner.submit(app.id, StoreScope.BOTH)
        >>> runner.wait_until_idle(timeout=60)
        >>> repo.get_job(job.id).status
        <JobStatus.SUCCEEDED: 'succeeded'>
    """

    def __init__(self, repository, executor: PreflightService):
        self.repository = repository
        self.executor = executor
        self._queue: Deque[int] = deque()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._worker: Optional[threading.Thread] = None
        self._active = False

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._active

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def submit(self, app_id: int, store_scope: StoreScope, payload: Optional[Dict[str, Any]] = None) -> SyncJob:
        """Create a queued job and hand it to the worker."""
        job = self.repository.create_job(app_id, StoreScope(store_scope), payload or {})
        self.repository.append_log(job.id, "info", "Job queued.")
        self.enqueue(job.id)
        return job

    def enqueue(self, job_id: int) -> None:
        with self._lock:
            self._queue.append(job_id)
            if self._active:
                return
            self._active = True
            self._worker = threading.Thread(target=self._drain, name="sync-job-runner", daemon=True)
            self._worker.start()

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the queue is drained. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._active, timeout=timeout)

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._queue:
                    self._active = False
                    self._idle.notify_all()
                    return
                job_id = self._queue.popleft()
            try:
                self._run_job(job_id)
            except Exception:
                logger.exception(f"Sync job {job_id} could not be run")

    def _log(self, job_id: int, level: str, message: str) -> None:
        self.repository.append_log(job_id, level, message)
        python_level = {"warn": logging.WARNING, "error": logging.ERROR}.get(level, logging.INFO)
        log_with_context(logger, python_level, message)

    def _fail(self, job_id: int, error: Exception) -> None:
        try:
            self.repository.mark_failed(job_id, str(error))
            self.repository.append_log(job_id, "error", f"Job failed: {error}")
        except Exception as mark_error:
            logger.error(f"Could not mark sync job {job_id} failed: {mark_error}")

    def _run_job(self, job_id: int) -> None:
        try:
            job = self.repository.get_job(job_id)
        except Exception as e:
            logger.exception(f"Could not load sync job {job_id}")
            self._fail(job_id, e)
            return
        if job is None:
            logger.warning(f"Sync job {job_id} not found, skipping")
            return

        with CorrelationContext(job_id=job_id, app_id=job.app_id):
            try:
                job = self.repository.mark_running(job_id)
                self._log(job_id, "info", "Job started.")
                summary = self.executor.execute(job, lambda level, message: self._log(job_id, level, message))
                self.repository.mark_succeeded(job_id, summary)
                self._log(job_id, "info", "Job succeeded.")
            except Exception as e:
                logger.exception(f"Sync job {job_id} failed")
                self._fail(job_id, e)
