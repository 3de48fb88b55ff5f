"""Background worker for queued certificate issuance.

RUN:  python -m lms.worker

With ISSUANCE_MODE=queue the API commits completion rows and pushes one
task per student; this process runs the module/course issuance chain for
each of them in its own transaction.  Same image as the API, different
command:

  api:    uvicorn lms.main:app --host 0.0.0.0 --port 8000
  worker: python -m lms.worker

Issuance is idempotent, so a task that is delivered twice, or re-run via
POST /v1/modules/{id}/certificates after a crash, converges on the same
certificates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any
from uuid import UUID

from lms.core.config import SETTINGS
from lms.core.logging import setup_logging
from lms.models.student import StudentRef
from lms.repos.registry import open_repos
from lms.services.credential_issuer import issue_module_certificate_if_earned
from lms.services.task_queue import CERTIFICATE_ISSUANCE_QUEUE, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("lms.worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(CERTIFICATE_ISSUANCE_QUEUE)
async def handle_certificate_issuance(payload: dict) -> None:
    institution_id = payload.get("institution_id")
    student = StudentRef(
        record_id=UUID(payload["student_record_id"]),
        user_id=UUID(payload["student_user_id"]),
        institution_id=UUID(institution_id) if institution_id else None,
    )
    async with open_repos() as repos:
        result = await issue_module_certificate_if_earned(
            repos,
            student,
            UUID(payload["enrollment_id"]),
            UUID(payload["module_id"]),
            UUID(payload["course_id"]),
        )
    logger.info(
        "Queued issuance for student=%s module=%s -> %s",
        student.record_id,
        payload["module_id"],
        result.outcome.value,
    )


async def process_one(queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle a single task.  Returns False when the queue was empty."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False
    try:
        await HANDLERS[queue_name](task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS)
    logger.info("Worker started, listening on queues: %s", queues)
    while True:
        for queue_name in queues:
            await process_one(queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
