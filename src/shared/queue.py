"""Job queue contract for side-effect work (mail, chat alerts, order events).

Producers depend on ``JobQueue`` only. Two adapters exist:
- InMemoryJobQueue for development and tests
- RedisJobQueue for production, storing jobs in Redis

Consumers drain a queue with process_due(), which applies the job's retry
policy. ``worker.py`` runs the consumers.

Queues are looked up by name through get_queue() / set_queue(), mirroring the
gateway factory.
"""

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

import redis
import structlog

from shared.errors import TypedError

logger = structlog.get_logger(__name__)


class QueueName(Enum):
    NOTIFICATION = "notificationQueue"
    MAIL = "mailQueue"
    CHAT = "chatworkQueue"
    ORDER = "orderQueue"


class JobName(Enum):
    ORDER_CREATED = "order_created"
    SEND_MAIL = "send_mail"
    CHAT_ORDER_CREATED = "chat_order_created"
    EXPIRE_UNPAID_ORDER = "expire_unpaid_order"


class BackoffType(Enum):
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Backoff:
    type: BackoffType = BackoffType.EXPONENTIAL
    delay_ms: int = 5000


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    backoff: Backoff = field(default_factory=Backoff)
    remove_on_complete: bool = True
    remove_on_fail: bool = False

    def delay_for(self, attempt: int) -> int:
        """Milliseconds to wait before retrying after failed ``attempt`` (1-based)."""
        if self.backoff.type == BackoffType.EXPONENTIAL:
            return self.backoff.delay_ms * 2 ** (attempt - 1)
        return self.backoff.delay_ms

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "backoff": {"type": self.backoff.type.value, "delay": self.backoff.delay_ms},
            "removeOnComplete": self.remove_on_complete,
            "removeOnFail": self.remove_on_fail,
        }

    @classmethod
    def from_dict(cls, opts: dict) -> "RetryPolicy":
        backoff = opts.get("backoff") or {}
        return cls(
            attempts=int(opts.get("attempts", 3)),
            backoff=Backoff(BackoffType(backoff.get("type", "exponential")), int(backoff.get("delay", 5000))),
            remove_on_complete=bool(opts.get("removeOnComplete", True)),
            remove_on_fail=bool(opts.get("removeOnFail", False)),
        )


DEFAULT_RETRY_POLICY = RetryPolicy()
MAIL_RETRY_POLICY = RetryPolicy(backoff=Backoff(BackoffType.EXPONENTIAL, 60000))


@dataclass
class Job:
    id: str
    queue: str
    name: str
    data: dict
    policy: RetryPolicy = DEFAULT_RETRY_POLICY
    attempts_made: int = 0
    run_at: float = 0.0
    failed_reason: str | None = None


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------
class JobQueue(ABC):
    name: str

    @abstractmethod
    def enqueue(
        self,
        job_name: JobName | str,
        payload: dict,
        policy: RetryPolicy | None = None,
        job_id: str | None = None,
        delay_ms: int = 0,
    ) -> str:
        """Add a job and return its id. Re-adding a known job id is a no-op."""
        ...

    @abstractmethod
    def remove(self, job_id: str) -> bool:
        """Remove a waiting or delayed job. Returns False if it was not queued."""
        ...

    @abstractmethod
    def process_due(self, handler: Callable[[Job], Any]) -> int:
        """Run every job whose time has come through ``handler``.

        A job whose handler raises is retried per its policy. Returns the
        number of jobs run.
        """
        ...


def _job_name(job_name: JobName | str) -> str:
    return job_name.value if isinstance(job_name, JobName) else job_name


def _run_job(queue_name: str, job: Job, handler: Callable[[Job], Any]) -> float | None:
    """Run one attempt of ``job``.

    Returns the delay in seconds before the next attempt, or None when the job
    is finished (completed or out of attempts). ``job.failed_reason`` tells
    the two apart.
    """
    job.attempts_made += 1
    try:
        handler(job)
    except Exception as exc:
        job.failed_reason = str(exc)
        if job.attempts_made < job.policy.attempts:
            logger.warning(
                "Job failed, retry scheduled",
                queue=queue_name,
                job_id=job.id,
                job_name=job.name,
                attempt=job.attempts_made,
                error=str(exc),
            )
            return job.policy.delay_for(job.attempts_made) / 1000
        logger.error(
            "Job failed permanently",
            queue=queue_name,
            job_id=job.id,
            job_name=job.name,
            attempts=job.attempts_made,
            error=str(exc),
        )
        return None

    job.failed_reason = None
    return None


# ---------------------------------------------------------------------------
# In-memory adapter
# ---------------------------------------------------------------------------
class InMemoryJobQueue(JobQueue):
    """Process-local queue that honours retry policies when drained."""

    def __init__(self, name: str, clock: Callable[[], float] = time.time) -> None:
        self.name = name
        self._clock = clock
        self.jobs: dict[str, Job] = {}
        self.completed: list[Job] = []
        self.failed: list[Job] = []

    def enqueue(self, job_name, payload, policy=None, job_id=None, delay_ms=0) -> str:
        job_id = job_id or uuid4().hex
        if job_id in self.jobs:
            return job_id

        self.jobs[job_id] = Job(
            id=job_id,
            queue=self.name,
            name=_job_name(job_name),
            data=payload,
            policy=policy or DEFAULT_RETRY_POLICY,
            run_at=self._clock() + delay_ms / 1000,
        )
        return job_id

    def remove(self, job_id: str) -> bool:
        return self.jobs.pop(job_id, None) is not None

    def waiting(self, job_name: JobName | str | None = None) -> list[Job]:
        jobs = list(self.jobs.values())
        if job_name is not None:
            jobs = [j for j in jobs if j.name == _job_name(job_name)]
        return jobs

    def process_due(self, handler: Callable[[Job], Any]) -> int:
        now = self._clock()
        due = [j for j in list(self.jobs.values()) if j.run_at <= now]
        for job in due:
            retry_in = _run_job(self.name, job, handler)
            if retry_in is not None:
                job.run_at = now + retry_in
                continue

            # The job may have been removed while it ran
            self.jobs.pop(job.id, None)
            if job.failed_reason is not None:
                if not job.policy.remove_on_fail:
                    self.failed.append(job)
            elif not job.policy.remove_on_complete:
                self.completed.append(job)
        return len(due)


# ---------------------------------------------------------------------------
# Redis adapter
# ---------------------------------------------------------------------------
class RedisJobQueue(JobQueue):
    """Stores jobs as Redis hashes with a waiting list and a delayed sorted set."""

    def __init__(self, name: str, client: redis.Redis, prefix: str = "orderflow") -> None:
        self.name = name
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, name: str, url: str) -> "RedisJobQueue":
        return cls(name, redis.Redis.from_url(url, decode_responses=True))

    def _key(self, suffix: str) -> str:
        return f"{self.prefix}:{self.name}:{suffix}"

    def enqueue(self, job_name, payload, policy=None, job_id=None, delay_ms=0) -> str:
        job_id = job_id or uuid4().hex
        job_key = self._key(f"job:{job_id}")
        policy = policy or DEFAULT_RETRY_POLICY

        created = self.client.hsetnx(job_key, "name", _job_name(job_name))
        if not created:
            return job_id

        pipe = self.client.pipeline()
        pipe.hset(
            job_key,
            mapping={
                "data": json.dumps(payload, default=str),
                "opts": json.dumps(policy.to_dict()),
                "attemptsMade": 0,
            },
        )
        if delay_ms > 0:
            pipe.zadd(self._key("delayed"), {job_id: int(time.time() * 1000) + delay_ms})
        else:
            pipe.rpush(self._key("waiting"), job_id)
        pipe.execute()
        return job_id

    def remove(self, job_id: str) -> bool:
        pipe = self.client.pipeline()
        pipe.delete(self._key(f"job:{job_id}"))
        pipe.lrem(self._key("waiting"), 0, job_id)
        pipe.zrem(self._key("delayed"), job_id)
        deleted, _, _ = pipe.execute()
        return bool(deleted)

    def process_due(self, handler: Callable[[Job], Any], limit: int = 100) -> int:
        now_ms = int(time.time() * 1000)
        self._promote_delayed(now_ms)

        processed = 0
        while processed < limit:
            job_id = self.client.lpop(self._key("waiting"))
            if job_id is None:
                break
            job = self._load(job_id)
            if job is None:
                continue
            processed += 1
            self._settle(job, _run_job(self.name, job, handler))
        return processed

    def _promote_delayed(self, now_ms: int) -> None:
        delayed = self._key("delayed")
        for job_id in self.client.zrangebyscore(delayed, 0, now_ms):
            # zrem succeeds for one worker only
            if self.client.zrem(delayed, job_id):
                self.client.rpush(self._key("waiting"), job_id)

    def _load(self, job_id: str) -> Job | None:
        fields = self.client.hgetall(self._key(f"job:{job_id}"))
        if not fields or "data" not in fields:
            return None
        return Job(
            id=job_id,
            queue=self.name,
            name=fields["name"],
            data=json.loads(fields["data"]),
            policy=RetryPolicy.from_dict(json.loads(fields.get("opts") or "{}")),
            attempts_made=int(fields.get("attemptsMade", 0)),
            failed_reason=fields.get("failedReason") or None,
        )

    def _settle(self, job: Job, retry_in: float | None) -> None:
        job_key = self._key(f"job:{job.id}")
        pipe = self.client.pipeline()
        if retry_in is not None:
            pipe.hset(job_key, mapping={"attemptsMade": job.attempts_made, "failedReason": job.failed_reason})
            pipe.zadd(self._key("delayed"), {job.id: int((time.time() + retry_in) * 1000)})
        elif job.failed_reason is not None:
            if job.policy.remove_on_fail:
                pipe.delete(job_key)
            else:
                pipe.hset(job_key, mapping={"attemptsMade": job.attempts_made, "failedReason": job.failed_reason})
                pipe.rpush(self._key("failed"), job.id)
        elif job.policy.remove_on_complete:
            pipe.delete(job_key)
        else:
            pipe.hset(job_key, "attemptsMade", job.attempts_made)
            pipe.rpush(self._key("completed"), job.id)
        pipe.execute()


# ---------------------------------------------------------------------------
# Producer helper
# ---------------------------------------------------------------------------
def add_job_with_retry(
    queue: JobQueue,
    job_name: JobName | str,
    payload: dict,
    policy: RetryPolicy | None = None,
    job_id: str | None = None,
    delay_ms: int = 0,
) -> str:
    """Enqueue a job, logging and re-raising if the queue rejects it."""
    try:
        return queue.enqueue(job_name, payload, policy or DEFAULT_RETRY_POLICY, job_id=job_id, delay_ms=delay_ms)
    except Exception as exc:
        logger.error(
            "Failed to enqueue job",
            queue=queue.name,
            job_name=_job_name(job_name),
            error=str(exc),
        )
        raise


def handle_job_error(error: Exception, job: Job, context: str) -> None:
    """Swallow errors that retrying cannot fix, re-raise the rest."""
    if isinstance(error, TypedError) and not error.retryable:
        logger.error(
            f"[{context}] discarding job",
            job_id=job.id,
            job_name=job.name,
            code=error.code.value,
            message=error.message,
        )
        return

    logger.error(
        f"[{context}] job failed",
        job_id=job.id,
        job_name=job.name,
        attempt=job.attempts_made,
        error=str(error),
    )
    raise error


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
_queues: dict[str, JobQueue] = {}


def get_queue(name: QueueName | str) -> JobQueue:
    """Return the queue registered under ``name``. Defaults to an in-memory queue."""
    key = name.value if isinstance(name, QueueName) else name
    if key not in _queues:
        _queues[key] = InMemoryJobQueue(key)
    return _queues[key]


def set_queue(name: QueueName | str, queue: JobQueue) -> None:
    key = name.value if isinstance(name, QueueName) else name
    _queues[key] = queue


def reset_queues() -> None:
    _queues.clear()
