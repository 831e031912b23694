"""In-process job queue with a fixed worker pool per job type.

Review note:
- 每个队列一个固定大小的 worker 池；一个任务只会被一个 worker 领取并执行到结束，不做隐式重试。
- 状态流转受 ALLOWED_TRANSITIONS 约束；失败任务只能通过 `retry()` 显式回到 waiting。
- 任务快照落盘为 job.json，重启后仍可查询状态；重启前处于 active 的任务没有 worker 持有，查询时报告 stuck。
- payload / result 都是 pydantic 模型，入队和完成时各校验一次。
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Deque, Dict, Generic, Iterable, List, Optional, Set, Type, TypeVar
import asyncio
import logging
import time
import uuid

from pydantic import BaseModel

from legaldocs.services.errors import ConflictError, NotFoundError, ServiceError
from legaldocs.services.jobs.storage import (
    build_job_paths,
    iter_job_snapshots,
    remove_job_dir,
    save_job_json,
)

logger = logging.getLogger("uvicorn.error")

P = TypeVar("P", bound=BaseModel)


class JobStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"
    PAUSED = "paused"
    STUCK = "stuck"
    UNKNOWN = "unknown"


ALLOWED_TRANSITIONS: Dict[JobStatus, Set[JobStatus]] = {
    JobStatus.WAITING: {JobStatus.ACTIVE, JobStatus.DELAYED, JobStatus.PAUSED},
    JobStatus.ACTIVE: {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.DELAYED, JobStatus.PAUSED},
    JobStatus.DELAYED: {JobStatus.WAITING, JobStatus.ACTIVE},
    JobStatus.PAUSED: {JobStatus.WAITING, JobStatus.ACTIVE},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}

PENDING_STATUSES = (JobStatus.WAITING, JobStatus.ACTIVE, JobStatus.DELAYED, JobStatus.PAUSED)
FINISHED_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class JobStateError(ConflictError):
    """Raised when a job is asked to move along a transition the state machine forbids."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


@dataclass
class Job:
    id: str
    queue: str
    payload: Dict[str, Any]
    status: str = JobStatus.WAITING.value
    progress: int = 0
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    attempts_made: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    delayed_until: Optional[str] = None

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "job_id": self.id,
            "queue": self.queue,
            "status": self.status,
            "progress": self.progress,
            "error": self.error,
            "payload": dict(self.payload),
            "result": dict(self.result) if self.result is not None else None,
            "attempts_made": self.attempts_made,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "delayed_until": self.delayed_until,
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "Job":
        return cls(
            id=str(data["job_id"]),
            queue=str(data.get("queue") or ""),
            payload=dict(data.get("payload") or {}),
            status=str(data.get("status") or ""),
            progress=int(data.get("progress") or 0),
            error=data.get("error"),
            result=data.get("result"),
            attempts_made=int(data.get("attempts_made") or 0),
            created_at=data.get("created_at") or _now_iso(),
            updated_at=data.get("updated_at") or _now_iso(),
            started_at=data.get("started_at"),
            finished_at=data.get("finished_at"),
            delayed_until=data.get("delayed_until"),
        )


class RateLimiter:
    """Sliding-window limiter: at most `max_jobs` job starts per `window_sec`."""

    def __init__(self, max_jobs: int, window_sec: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_jobs = int(max_jobs)
        self.window_sec = float(window_sec)
        self._clock = clock
        self._starts: Deque[float] = deque()

    def reserve(self) -> float:
        """Record a start and return 0, or return how many seconds the caller must wait."""
        if self.max_jobs <= 0 or self.window_sec <= 0:
            return 0.0
        now = self._clock()
        while self._starts and now - self._starts[0] >= self.window_sec:
            self._starts.popleft()
        if len(self._starts) < self.max_jobs:
            self._starts.append(now)
            return 0.0
        return max(self._starts[0] + self.window_sec - now, 0.0)


class JobContext(Generic[P]):
    """What a handler sees of the job it is running."""

    def __init__(self, queue: "JobQueue", job: Job, payload: P) -> None:
        self._queue = queue
        self.job_id = job.id
        self.payload = payload

    async def update_progress(self, progress: int) -> None:
        self._queue._set_progress(self.job_id, progress)


JobHandler = Callable[[JobContext], Awaitable[Any]]


class JobQueue:
    def __init__(
        self,
        name: str,
        handler: JobHandler,
        payload_model: Type[BaseModel],
        result_model: Optional[Type[BaseModel]] = None,
        *,
        concurrency: int = 1,
        limiter: Optional[RateLimiter] = None,
        data_dir: str | Path | None = None,
        remove_on_complete: Optional[int] = None,
        remove_on_fail: Optional[int] = None,
    ) -> None:
        self.name = name
        self.handler = handler
        self.payload_model = payload_model
        self.result_model = result_model
        self.concurrency = max(1, int(concurrency))
        self.limiter = limiter
        self.data_dir = Path(data_dir) if data_dir else None
        self.remove_on_complete = remove_on_complete
        self.remove_on_fail = remove_on_fail

        self._jobs: Dict[str, Job] = {}
        self._owners: Dict[str, int] = {}
        self._done: Dict[str, asyncio.Event] = {}
        self._ready: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._timers: Set[asyncio.Task] = set()
        self._paused = False
        self._loaded = False

    # ---------- lifecycle ----------

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    @property
    def is_paused(self) -> bool:
        return self._paused

    def load(self) -> None:
        """Reload persisted snapshots; waiting work resumes once the queue starts."""
        if self._loaded or not self.data_dir:
            self._loaded = True
            return
        self._loaded = True
        for data in iter_job_snapshots(self.data_dir, self.name):
            try:
                job = Job.from_snapshot(data)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("job-snapshot-skipped queue=%s error=%s", self.name, exc)
                continue
            if job.status == JobStatus.PAUSED.value:
                job.status = JobStatus.WAITING.value
            self._jobs.setdefault(job.id, job)
        logger.info("job-queue-loaded queue=%s jobs=%s", self.name, len(self._jobs))

    async def start(self) -> None:
        if self._workers:
            return
        self.load()
        self._ready = asyncio.Queue()
        for job in sorted(self._jobs.values(), key=lambda j: j.created_at):
            if job.status == JobStatus.WAITING.value:
                self._ready.put_nowait(job.id)
            elif job.status == JobStatus.DELAYED.value:
                self._schedule_promotion(job, self._remaining_delay(job))
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"{self.name}-worker-{index}")
            for index in range(self.concurrency)
        ]
        logger.info("job-queue-started queue=%s concurrency=%s", self.name, self.concurrency)

    async def close(self) -> None:
        tasks = list(self._workers) + list(self._timers)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._workers = []
        self._timers.clear()
        self._owners.clear()
        self._ready = None
        logger.info("job-queue-closed queue=%s", self.name)

    # ---------- submission ----------

    async def add(self, payload: BaseModel | Dict[str, Any], delay_sec: float = 0) -> Job:
        model = self.payload_model.model_validate(payload)
        job = Job(
            id=uuid.uuid4().hex,
            queue=self.name,
            payload=model.model_dump(mode="json"),
        )
        self._jobs[job.id] = job
        self._done_event(job.id)
        if delay_sec and delay_sec > 0:
            self._set_status(job, JobStatus.DELAYED)
            self._schedule_promotion(job, float(delay_sec))
        elif self._paused:
            self._set_status(job, JobStatus.PAUSED)
        else:
            self._persist(job)
            self._enqueue(job.id)
        logger.info("job-added queue=%s job_id=%s status=%s", self.name, job.id, job.status)
        return job

    # ---------- queries ----------

    def get_job(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(str(job_id))

    def get_state(self, job_id: str) -> Optional[JobStatus]:
        job = self.get_job(job_id)
        if job is None:
            return None
        try:
            status = JobStatus(job.status)
        except ValueError:
            return JobStatus.UNKNOWN
        if status is JobStatus.ACTIVE and job.id not in self._owners:
            return JobStatus.STUCK
        return status

    def get_jobs(self, statuses: Iterable[JobStatus | str]) -> List[Job]:
        wanted = {JobStatus(s) for s in statuses}
        return [job for job in self._jobs.values() if self.get_state(job.id) in wanted]

    async def wait_until_finished(self, job_id: str, timeout: Optional[float] = None) -> Job:
        job = self.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if job.status not in FINISHED_STATUSES:
            await asyncio.wait_for(self._done_event(job.id).wait(), timeout=timeout)
        return job

    # ---------- control ----------

    def pause(self) -> None:
        """Stop handing out new jobs; running jobs finish normally."""
        if self._paused:
            return
        self._paused = True
        for job in list(self._jobs.values()):
            if job.status == JobStatus.WAITING.value:
                self._set_status(job, JobStatus.PAUSED)
        logger.info("job-queue-paused queue=%s", self.name)

    def resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        for job in sorted(self._jobs.values(), key=lambda j: j.created_at):
            if job.status == JobStatus.PAUSED.value:
                self._set_status(job, JobStatus.WAITING)
                self._enqueue(job.id)
        logger.info("job-queue-resumed queue=%s", self.name)

    def remove(self, job_id: str) -> Job:
        job = self.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if self.get_state(job.id) is JobStatus.ACTIVE:
            raise ConflictError("Job is active and cannot be removed", errors={"jobId": job.id})
        self._drop(job)
        logger.info("job-removed queue=%s job_id=%s status=%s", self.name, job.id, job.status)
        return job

    def retry(self, job_id: str) -> Job:
        """Explicitly move a failed job back to waiting."""
        job = self.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if job.status != JobStatus.FAILED.value:
            raise JobStateError("Only failed jobs can be retried", errors={"jobId": job.id, "status": job.status})
        job.error = None
        job.progress = 0
        job.finished_at = None
        self._done[job.id] = asyncio.Event()
        if self._paused:
            job.status = JobStatus.PAUSED.value
        else:
            job.status = JobStatus.WAITING.value
            self._enqueue(job.id)
        job.updated_at = _now_iso()
        self._persist(job)
        logger.info("job-retried queue=%s job_id=%s", self.name, job.id)
        return job

    # ---------- internals ----------

    def _done_event(self, job_id: str) -> asyncio.Event:
        event = self._done.get(job_id)
        if event is None:
            event = asyncio.Event()
            self._done[job_id] = event
        return event

    def _enqueue(self, job_id: str) -> None:
        if self._ready is not None:
            self._ready.put_nowait(job_id)

    def _persist(self, job: Job) -> None:
        if not self.data_dir:
            return
        save_job_json(build_job_paths(self.data_dir, self.name, job.id), job.to_snapshot())

    def _set_status(self, job: Job, new: JobStatus) -> None:
        try:
            current = JobStatus(job.status)
        except ValueError:
            current = JobStatus.UNKNOWN
        if new not in ALLOWED_TRANSITIONS.get(current, set()):
            raise JobStateError(
                f"Invalid job transition {current.value} -> {new.value}",
                errors={"jobId": job.id},
            )
        job.status = new.value
        job.updated_at = _now_iso()
        self._persist(job)

    def _set_progress(self, job_id: str, progress: int) -> None:
        job = self.get_job(job_id)
        if job is None:
            return
        job.progress = max(0, min(100, int(progress)))
        job.updated_at = _now_iso()
        self._persist(job)

    def _remaining_delay(self, job: Job) -> float:
        until = _parse_iso(job.delayed_until)
        if until is None:
            return 0.0
        return max((until - datetime.now(timezone.utc)).total_seconds(), 0.0)

    def _schedule_promotion(self, job: Job, delay_sec: float) -> None:
        job.delayed_until = (datetime.now(timezone.utc) + timedelta(seconds=delay_sec)).isoformat()
        self._persist(job)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._promote_later(job.id, delay_sec))
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)

    async def _promote_later(self, job_id: str, delay_sec: float) -> None:
        await asyncio.sleep(delay_sec)
        job = self.get_job(job_id)
        if job is None or job.status != JobStatus.DELAYED.value:
            return
        job.delayed_until = None
        self._set_status(job, JobStatus.WAITING)
        if self._paused:
            self._set_status(job, JobStatus.PAUSED)
        else:
            self._enqueue(job.id)

    def _fail(self, job: Job, exc: BaseException) -> None:
        job.error = str(exc) or exc.__class__.__name__
        job.finished_at = _now_iso()
        self._set_status(job, JobStatus.FAILED)

    def _drop(self, job: Job) -> None:
        self._jobs.pop(job.id, None)
        self._done.pop(job.id, None)
        if self.data_dir:
            remove_job_dir(build_job_paths(self.data_dir, self.name, job.id))

    def _prune_finished(self) -> None:
        for status, keep in (
            (JobStatus.COMPLETED, self.remove_on_complete),
            (JobStatus.FAILED, self.remove_on_fail),
        ):
            if keep is None or keep < 0:
                continue
            finished = [job for job in self._jobs.values() if job.status == status.value]
            if len(finished) <= keep:
                continue
            finished.sort(key=lambda j: j.finished_at or j.updated_at)
            for job in finished[: len(finished) - keep]:
                self._drop(job)

    async def _worker(self, index: int) -> None:
        assert self._ready is not None
        ready = self._ready
        while True:
            job_id = await ready.get()
            job = self.get_job(job_id)
            # 已被移除 / 暂停 / 其他 worker 领取的条目直接跳过
            if job is None or job.status != JobStatus.WAITING.value:
                continue
            if self.limiter is not None:
                wait = self.limiter.reserve()
                if wait > 0:
                    self._set_status(job, JobStatus.DELAYED)
                    self._schedule_promotion(job, wait)
                    logger.info("job-delayed queue=%s job_id=%s delay_sec=%.2f", self.name, job.id, wait)
                    continue
            await self._run(job, index)

    async def _run(self, job: Job, worker_index: int) -> None:
        self._owners[job.id] = worker_index
        job.attempts_made += 1
        job.started_at = _now_iso()
        self._set_status(job, JobStatus.ACTIVE)
        logger.info("job-active queue=%s job_id=%s worker=%s", self.name, job.id, worker_index)
        started = time.perf_counter()
        try:
            payload = self.payload_model.model_validate(job.payload)
            returned = await self.handler(JobContext(self, job, payload))
            if self.result_model is not None and returned is not None:
                returned = self.result_model.model_validate(returned)
            if isinstance(returned, BaseModel):
                returned = returned.model_dump(mode="json")
            job.result = returned
            job.finished_at = _now_iso()
            self._set_status(job, JobStatus.COMPLETED)
            logger.info(
                "job-completed queue=%s job_id=%s elapsed_ms=%s",
                self.name,
                job.id,
                int((time.perf_counter() - started) * 1000),
            )
        except asyncio.CancelledError:
            # 关闭时中断的任务保持 active，重启后报告为 stuck
            self._persist(job)
            raise
        except ServiceError as exc:
            self._fail(job, exc)
            logger.warning("job-failed queue=%s job_id=%s error=%s", self.name, job.id, job.error)
        except Exception as exc:
            self._fail(job, exc)
            logger.exception("job-failed queue=%s job_id=%s error=%s", self.name, job.id, job.error)
        finally:
            self._owners.pop(job.id, None)
        self._done_event(job.id).set()
        self._prune_finished()
