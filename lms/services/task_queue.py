"""Background task queue on Redis lists.

With ISSUANCE_MODE=queue, complete_session commits its completion rows
and pushes one task per student onto the "certificate_issuance" queue;
lms/worker.py pops them and runs the module/course issuance chain.

  Producer (API):    LPUSH onto tasks:<queue>, return immediately
  Consumer (worker): BRPOP from tasks:<queue>, process, loop

LPUSH at the head and BRPOP from the tail gives FIFO order.  Delivery is
at-most-once: a worker that dies mid-task loses it.  That is tolerable
here because issuance is idempotent and POST /v1/modules/{id}/certificates
re-runs the chain for a student on demand.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from lms.core.metrics import QUEUE_DEPTH
from lms.db.redis import redis_pool

CERTIFICATE_ISSUANCE_QUEUE = "certificate_issuance"


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    queue: str
    payload: dict  # JSON-serializable


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        self._queues.setdefault(queue, []).append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(self._queues[queue]))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        tasks = self._queues.get(queue, [])
        if not tasks:
            return None
        task = tasks.pop(0)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        task_json = json.dumps(
            {"id": task.id, "queue": task.queue, "payload": task.payload}
        )
        depth = await self._redis.lpush(f"{self._PREFIX}{queue}", task_json)
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        # Blocks up to `timeout` seconds; None when nothing arrived.
        result = await self._redis.brpop(f"{self._PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, task_json = result
        return Task(**json.loads(task_json))

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(f"{self._PREFIX}{queue}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
