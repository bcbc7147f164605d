"""
Queue for handing compression sweep jobs to the worker.

The API enqueues the id of a freshly created job row; the worker pops ids
and claims the matching row before running the sweep. Tests and local runs
use the in-memory queue, production uses a Redis list.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


class JobQueue(Protocol):
    def enqueue(self, job_id: str) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        ...


@dataclass
class InMemoryJobQueue:
    """FIFO of job ids. Never blocks."""

    items: deque = field(default_factory=deque)

    def enqueue(self, job_id: str) -> None:
        self.items.append(job_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        return self.items.popleft() if self.items else None


@dataclass
class RedisJobQueue:
    url: str
    queue_key: str = "studio:compression-jobs"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, job_id: str) -> None:
        self.client.rpush(self.queue_key, job_id)
        logger.info("Enqueued compression job %s on %s", job_id, self.queue_key)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            if block:
                popped = self.client.blpop(self.queue_key, timeout=timeout or 0)
                job_id = popped[1] if popped else None
            else:
                job_id = self.client.lpop(self.queue_key)
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; reconnect and let the
            # worker loop poll again.
            logger.warning("Redis connection lost, reconnecting")
            self.client = redis.Redis.from_url(self.url)
            return None
        if job_id is None:
            return None
        return job_id.decode("utf-8")
