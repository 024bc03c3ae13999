"""Background generation jobs.

Video generation takes minutes, so the HTTP API does not wait for it.
:class:`JobManager` runs each submission as an asyncio task and records its
progress, result and error on a :class:`Job` that the page polls.

Rules
-----
- **Single flight per session**: a session may have at most one active job.
  Submitting another before the first finishes raises
  :class:`JobConflictError`.
- **Explicit cancellation**: :meth:`JobManager.cancel` cancels the task;
  :meth:`JobManager.shutdown` cancels every task when the server stops.
- **Asset ownership**: a session keeps only its latest video.  When a new job
  succeeds, the previous job's video handle is released first.
- **Bounded history**: finished jobs beyond ``retention`` are evicted oldest
  first, releasing any video they still hold.  Completed tasks are dropped as
  soon as they finish.
- **One conversion point**: failures are turned into display text with
  :func:`~veoworks.core.errors.describe_failure` here and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from veoworks.core.assets import AssetHandle, AssetStore
from veoworks.core.errors import VideoGenerationError, describe_failure
from veoworks.core.generator import VideoService, generate_video
from veoworks.core.models import GenerationRequest
from veoworks.core.poller import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)


class JobConflictError(VideoGenerationError):
    """The session already has a job in flight.

    Attributes:
        job: The active job, so the caller can resume polling or cancel it.
    """

    kind = "conflict"

    def __init__(self, message: str, job: Job) -> None:
        super().__init__(message)
        self.job = job


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED})


@dataclass
class Job:
    """State of one generation submission."""

    job_id: str
    session_id: str
    state: JobState = JobState.PENDING
    message: str = ""
    error: str | None = None
    error_kind: str | None = None
    video: AssetHandle | None = None
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def is_active(self) -> bool:
        return self.state not in TERMINAL_STATES

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "session_id": self.session_id,
            "state": self.state.value,
            "message": self.message,
            "error": self.error,
            "error_kind": self.error_kind,
            "video": self.video.to_dict() if self.video is not None else None,
            "created_at": self.created_at,
            "finished_at": self.finished_at,
        }


class JobManager:
    """Runs generation jobs as background tasks on the current event loop."""

    def __init__(
        self,
        client: VideoService,
        store: AssetStore,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_timeout: float | None = None,
        retention: int = 64,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._store = store
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._sleep = sleep
        self._retention = retention

        self._jobs: dict[str, Job] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._latest_success: dict[str, str] = {}

    # -- Queries ------------------------------------------------------------

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def active_job(self, session_id: str) -> Job | None:
        """Return the session's in-flight job, if any."""
        for job in self._jobs.values():
            if job.session_id == session_id and job.is_active:
                return job
        return None

    # -- Commands -----------------------------------------------------------

    def submit(self, session_id: str, request: GenerationRequest) -> Job:
        """Start a generation job for *session_id*.

        Must be called from a running event loop.

        Raises:
            JobConflictError: If the session already has an active job.
        """
        active = self.active_job(session_id)
        if active is not None:
            raise JobConflictError(
                f"A video is already being generated for this session (job {active.job_id}).",
                active,
            )

        job = Job(job_id=uuid.uuid4().hex, session_id=session_id)
        self._jobs[job.job_id] = job
        task = asyncio.create_task(self._run(job, request), name=f"veoworks-job-{job.job_id}")
        task.add_done_callback(lambda _: self._on_task_done(job.job_id))
        self._tasks[job.job_id] = task
        logger.info(f"Submitted job {job.job_id} for session {session_id}")
        return job

    async def cancel(self, job_id: str) -> Job | None:
        """Cancel a running job and wait for it to stop.

        Returns:
            The job, or ``None`` if *job_id* is unknown.  Cancelling a job
            that already finished leaves it unchanged.
        """
        job = self._jobs.get(job_id)
        if job is None:
            return None

        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            logger.info(f"Cancelling job {job_id}")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self._mark_cancelled(job)
            self._evict_finished()
        return job

    async def wait(self, job_id: str) -> Job | None:
        """Wait until a job reaches a terminal state."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._jobs.get(job_id)

    async def shutdown(self) -> None:
        """Cancel all running jobs and release every video they hold."""
        running = [task for task in self._tasks.values() if not task.done()]
        for task in running:
            task.cancel()
        if running:
            logger.info(f"Cancelling {len(running)} running jobs on shutdown")
            await asyncio.gather(*running, return_exceptions=True)

        for job in self._jobs.values():
            self._mark_cancelled(job)
            if job.video is not None:
                self._store.release(job.video)
                job.video = None

    # -- Internals ----------------------------------------------------------

    def _mark_cancelled(self, job: Job) -> None:
        # A task cancelled before its first step never runs _run.
        if job.is_active:
            job.state = JobState.CANCELLED
            job.message = "Cancelled."
            job.finished_at = time.time()

    def _set_progress(self, job: Job, message: str) -> None:
        job.message = message

    def _on_task_done(self, job_id: str) -> None:
        self._tasks.pop(job_id, None)
        self._evict_finished()

    def _evict_finished(self) -> None:
        """Drop the oldest finished jobs beyond the retention limit."""
        finished = [job for job in self._jobs.values() if not job.is_active]
        excess = len(finished) - self._retention
        if excess <= 0:
            return

        finished.sort(key=lambda job: job.finished_at or job.created_at)
        for job in finished[:excess]:
            del self._jobs[job.job_id]
            if job.video is not None:
                self._store.release(job.video)
                job.video = None
            if self._latest_success.get(job.session_id) == job.job_id:
                del self._latest_success[job.session_id]
        logger.debug(f"Evicted {excess} finished jobs")

    def _replace_session_video(self, job: Job) -> None:
        previous_id = self._latest_success.get(job.session_id)
        previous = self._jobs.get(previous_id) if previous_id else None
        if previous is not None and previous.video is not None:
            self._store.release(previous.video)
            previous.video = None
        self._latest_success[job.session_id] = job.job_id

    async def _run(self, job: Job, request: GenerationRequest) -> None:
        job.state = JobState.RUNNING
        try:
            handle = await generate_video(
                self._client,
                request,
                self._store,
                on_progress=lambda message: self._set_progress(job, message),
                poll_interval=self._poll_interval,
                poll_timeout=self._poll_timeout,
                sleep=self._sleep,
            )
        except asyncio.CancelledError:
            job.state = JobState.CANCELLED
            job.message = "Cancelled."
            job.finished_at = time.time()
            logger.info(f"Job {job.job_id} cancelled")
            raise
        except Exception as e:
            job.state = JobState.FAILED
            job.error = describe_failure(e)
            job.error_kind = getattr(e, "kind", "unknown")
            job.message = ""
            job.finished_at = time.time()
            logger.error(f"Error generating video for job {job.job_id}: {e}", exc_info=True)
            return

        self._replace_session_video(job)
        job.video = handle
        job.state = JobState.SUCCEEDED
        job.finished_at = time.time()
        logger.info(f"Job {job.job_id} succeeded: {handle.url}")
