# src/repairdesk/infrastructure/sync_queue.py
"""
Offline Sync Queue

Ordered, persisted list of mutations (ADD / UPDATE / FIX) that could not be
written to the remote store. Tasks are replayed strictly in insertion order.

Features:
- Persisted after every enqueue and every removal
- Read-modify-write under an asyncio lock (no lost updates between
  overlapping enqueues)
- Drains are sequential; a transient failure halts the drain so later
  tasks never overtake the one they may depend on

Usage:
    from .sync_queue import SyncQueue, ApplyOutcome

    queue = SyncQueue(store)
    await queue.enqueue(SyncAction.ADD, {"row": {...}})

    async def apply(task):
        ...
        return ApplyOutcome.SUCCESS

    result = await queue.drain(apply)
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from ..core.models import SyncAction, SyncTask
from ..core.ports.storage import KeyValueStore

logger = logging.getLogger(__name__)

QUEUE_KEY = "sync_queue"


class ApplyOutcome(Enum):
    """Result of replaying one task against the remote store."""
    SUCCESS = "success"
    PERMANENT_FAILURE = "permanent_failure"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass
class DrainResult:
    """Summary of one drain pass."""
    applied: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    halted_on: Optional[str] = None
    remaining: int = 0

    @property
    def completed(self) -> bool:
        """True if the drain ran until the queue was exhausted."""
        return self.halted_on is None


ApplyFn = Callable[[SyncTask], Awaitable[ApplyOutcome]]


def serialize_tasks(tasks: Sequence[SyncTask]) -> str:
    """Serialize tasks to JSON, preserving order."""
    return json.dumps([task.to_dict() for task in tasks])


def deserialize_tasks(raw: str) -> List[SyncTask]:
    """
    Parse a serialized queue.

    Raises:
        ValueError: the payload is not a JSON list of tasks
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("Sync queue payload is not a list")
    try:
        return [SyncTask.from_dict(item) for item in data]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed sync task: {e}") from e


class SyncQueue:
    """
    Persisted FIFO of pending mutations.

    The persisted copy is the source of truth; every operation re-reads it.
    """

    def __init__(self, store: KeyValueStore, namespace: str = "repairdesk"):
        """
        Initialize the queue.

        Args:
            store: Local key-value persistence
            namespace: Key namespace prefix
        """
        self._store = store
        self._key = f"{namespace}:{QUEUE_KEY}"
        self._lock = asyncio.Lock()
        self._drain_lock = asyncio.Lock()

    def _read(self) -> List[SyncTask]:
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            return deserialize_tasks(raw)
        except ValueError as e:
            logger.error(f"❌ Sync queue unreadable, starting empty: {e}")
            return []

    def _write(self, tasks: Sequence[SyncTask]) -> None:
        self._store.set(self._key, serialize_tasks(tasks))

    async def enqueue(self, action: SyncAction, payload: Dict[str, Any]) -> SyncTask:
        """
        Append a task and persist the queue.

        Never raises: if local persistence fails the mutation is lost and logged.

        Args:
            action: Mutation type
            payload: Everything needed to replay the mutation

        Returns:
            The queued task
        """
        task = SyncTask(id=str(uuid.uuid4()), action=SyncAction(action), payload=payload)
        async with self._lock:
            try:
                tasks = self._read()
                tasks.append(task)
                self._write(tasks)
            except Exception as e:
                logger.error(f"❌ Failed to persist sync task {task.id} ({task.action.value}): {e}")
                return task

        logger.info(f"📥 Queued {task.action.value} task {task.id} ({len(tasks)} pending)")
        return task

    def peek_all(self) -> List[SyncTask]:
        """Get pending tasks in insertion order without changing the queue."""
        return self._read()

    @property
    def pending_count(self) -> int:
        return len(self._read())

    def is_empty(self) -> bool:
        return self.pending_count == 0

    async def remove(self, task_id: str) -> bool:
        """
        Delete one task by id and persist the queue.

        Returns:
            True if the task was present
        """
        async with self._lock:
            try:
                tasks = self._read()
                remaining = [task for task in tasks if task.id != task_id]
                if len(remaining) == len(tasks):
                    return False
                self._write(remaining)
            except Exception as e:
                logger.error(f"Failed to persist removal of sync task {task_id}: {e}")
                return False
        return True

    async def drain(self, apply_fn: ApplyFn) -> DrainResult:
        """
        Replay tasks in insertion order.

        SUCCESS and PERMANENT_FAILURE remove the task (persisted immediately)
        and continue. TRANSIENT_FAILURE stops the drain and leaves that task
        and every later one queued. An exception from apply_fn counts as
        transient.

        Args:
            apply_fn: Coroutine that attempts the remote write for one task

        Returns:
            DrainResult describing what happened
        """
        result = DrainResult()
        async with self._drain_lock:
            seen = set()
            while True:
                task = next((t for t in self.peek_all() if t.id not in seen), None)
                if task is None:
                    break
                seen.add(task.id)

                try:
                    outcome = await apply_fn(task)
                except Exception as e:
                    logger.error(f"Unexpected error replaying task {task.id}: {e}")
                    outcome = ApplyOutcome.TRANSIENT_FAILURE

                if outcome is ApplyOutcome.TRANSIENT_FAILURE:
                    result.halted_on = task.id
                    logger.warning(f"⚠️ Drain halted at {task.action.value} task {task.id}")
                    break

                await self.remove(task.id)
                if outcome is ApplyOutcome.SUCCESS:
                    result.applied.append(task.id)
                else:
                    result.dropped.append(task.id)
                    logger.info(f"Dropped {task.action.value} task {task.id} (permanent failure)")

            result.remaining = self.pending_count

        if result.applied or result.dropped:
            logger.info(
                f"✅ Drain replayed {len(result.applied)}, dropped {len(result.dropped)}, "
                f"{result.remaining} still pending"
            )
        return result
