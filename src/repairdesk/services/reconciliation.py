# src/repairdesk/services/reconciliation.py
"""
Reconciliation Engine

Owns the in-memory equipment collection and keeps it consistent with the
remote store across connectivity loss.

Every mutation runs three steps:
1. Optimistic-apply through the pure reducer
2. One remote attempt, if we believe we are online
3. Outcome: success emits a refresh request, anything else queues a SyncTask

Refetching (`fetch_items`) drains the queue first, so pending local writes
land before we read back "current" state. Tasks still queued after the
fetch are replayed over the fetched rows (or over the cached snapshot when
the fetch fails) so they stay visible.
"""

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.exceptions import CacheCorruptedError, DuplicateKeyError, RemoteError
from ..core.models import (
    EquipmentRecord,
    EquipmentStatus,
    FinalCondition,
    Priority,
    SyncAction,
    SyncTask,
    TechnicianLog,
    record_from_row,
    to_iso,
    utc_now,
)
from ..core.ports.database import EquipmentGateway
from ..infrastructure.cache import LocalCacheStore
from ..infrastructure.sync_queue import ApplyOutcome, DrainResult, SyncQueue
from .reducer import (
    Action,
    AddRecord,
    MarkFixed,
    ReplaceAll,
    UpdateJobDetails,
    find_record,
    next_job_card_no,
    reduce,
)

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = (
    "Failed to fetch records from the database. Please check your internet connection."
)

REJECTED_MESSAGE = "A change was rejected by the database and has been discarded."

RefreshListener = Callable[[], None]


@dataclass(frozen=True)
class Notice:
    """User-visible, non-fatal message."""
    level: str
    message: str
    created_at: str = field(default_factory=lambda: to_iso(utc_now()))

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level, "message": self.message, "created_at": self.created_at}


@dataclass(frozen=True)
class JobIntake:
    """Front-desk input for a new repair job."""
    type: str
    serial_number: str
    office_number: str
    assigned_to: str
    priority: Priority = Priority.MEDIUM
    os_firmware: str = ""
    notes: str = ""
    sr_number: str = ""
    owner: str = ""


LogInput = Union[TechnicianLog, Dict[str, Any]]


def _coerce_logs(logs: Iterable[LogInput]) -> Tuple[TechnicianLog, ...]:
    return tuple(
        log if isinstance(log, TechnicianLog) else TechnicianLog.from_dict(log) for log in logs
    )


def _coerce_condition(value: Union[FinalCondition, str, None]) -> Optional[FinalCondition]:
    if value is None or value == "":
        return None
    return FinalCondition(value)


class ReconciliationEngine:
    """Optimistic state plus queued replay against an EquipmentGateway."""

    def __init__(
        self,
        gateway: EquipmentGateway,
        queue: SyncQueue,
        cache: LocalCacheStore,
        job_card_prefix: str = "COMETZ",
        max_notices: int = 50,
        clock=utc_now,
    ):
        """
        Args:
            gateway: Remote store port
            queue: Persisted queue of pending mutations
            cache: Last known-good snapshot
            job_card_prefix: Tag in front of generated job card numbers
            max_notices: How many notices to keep
            clock: Returns the current aware datetime (injectable for tests)
        """
        self._gateway = gateway
        self._queue = queue
        self._cache = cache
        self._job_card_prefix = job_card_prefix
        self._clock = clock

        self._items: Tuple[EquipmentRecord, ...] = ()
        self._online = False
        self._refresh_listeners: List[RefreshListener] = []
        self._fetch_lock = asyncio.Lock()

        self.notices: Deque[Notice] = deque(maxlen=max_notices)
        self.refresh_requests = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def items(self) -> Tuple[EquipmentRecord, ...]:
        return self._items

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info(f"Engine now {'online' if online else 'offline'}")
        self._online = online

    def get(self, record_id: str) -> EquipmentRecord:
        """Raises RecordNotFoundError for unknown ids."""
        return find_record(self._items, record_id)

    def dispatch(self, action: Action) -> Tuple[EquipmentRecord, ...]:
        self._items = reduce(self._items, action)
        return self._items

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        self._refresh_listeners.append(listener)

    def _request_refresh(self) -> None:
        self.refresh_requests += 1
        for listener in self._refresh_listeners:
            try:
                listener()
            except Exception as e:
                logger.error(f"Refresh listener failed: {e}")

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    def sync_status(self) -> Dict[str, Any]:
        tasks = self._queue.peek_all()
        return {
            "online": self._online,
            "pending": len(tasks),
            "tasks": [task.to_dict() for task in tasks],
            "notices": [notice.to_dict() for notice in self.notices],
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_job(self, job: JobIntake, logged_by: str) -> EquipmentRecord:
        """Create a Pending repair job with a generated job card number."""
        now = self._clock()
        row = {
            "id": str(uuid.uuid4()),
            "job_card_no": next_job_card_no(len(self._items), now, self._job_card_prefix),
            "type": job.type,
            "serial_number": job.serial_number,
            "office_number": job.office_number,
            "assigned_to": job.assigned_to,
            "logged_by": logged_by,
            "status": EquipmentStatus.PENDING.value,
            "priority": Priority(job.priority).value,
            "os_firmware": job.os_firmware,
            "notes": job.notes,
            "technician_logs": [],
            "final_condition": None,
            "received_date": to_iso(now),
            "sr_number": job.sr_number,
            "owner": job.owner,
        }
        record = record_from_row(row)
        self.dispatch(AddRecord(record))
        logger.info(f"📝 New job {record.job_card_no} for {record.serial_number}")

        await self._commit(SyncAction.ADD, {"row": row})
        return record

    async def update_job_details(
        self,
        record_id: str,
        technician_logs: Sequence[LogInput],
        final_condition: Union[FinalCondition, str, None],
    ) -> EquipmentRecord:
        """
        Replace the technician log list and final condition.

        Raises:
            RecordNotFoundError: unknown record
            InvalidTransitionError: the new logs do not extend the current ones
        """
        logs = _coerce_logs(technician_logs)
        condition = _coerce_condition(final_condition)
        self.dispatch(UpdateJobDetails(record_id, logs, condition))

        await self._commit(
            SyncAction.UPDATE,
            {
                "id": record_id,
                "technician_logs": [log.to_dict() for log in logs],
                "final_condition": condition.value if condition else None,
            },
        )
        return self.get(record_id)

    async def log_work(
        self,
        record_id: str,
        technician: str,
        action: str,
        final_condition: Union[FinalCondition, str, None] = None,
    ) -> EquipmentRecord:
        """Append one technician log entry, optionally setting the final condition."""
        current = self.get(record_id)
        entry = TechnicianLog(date=to_iso(self._clock()), technician=technician, action=action)
        condition = final_condition if final_condition else current.final_condition
        return await self.update_job_details(
            record_id, current.technician_logs + (entry,), condition
        )

    async def mark_as_fixed(self, record_id: str) -> EquipmentRecord:
        """
        Mark a record Fixed with the current timestamp.

        Marking an already-Fixed record re-sends its existing fixed_date and
        leaves local state unchanged.
        """
        current = self.get(record_id)
        fixed_date = current.fixed_date if current.is_fixed else to_iso(self._clock())
        self.dispatch(MarkFixed(record_id, fixed_date))

        await self._commit(
            SyncAction.FIX,
            {"id": record_id, "status": EquipmentStatus.FIXED.value, "fixed_date": fixed_date},
        )
        return self.get(record_id)

    async def _commit(self, action: SyncAction, payload: Dict[str, Any]) -> bool:
        """
        Remote-attempt and outcome for one mutation.

        Returns:
            True if the remote write landed now
        """
        if not self._online:
            await self._queue.enqueue(action, payload)
            return False

        if not self._queue.is_empty():
            # Must not overtake queued tasks; the refresh drains them in order
            await self._queue.enqueue(action, payload)
            self._request_refresh()
            return False

        outcome = await self._apply(action, payload)
        if outcome is ApplyOutcome.TRANSIENT_FAILURE:
            await self._queue.enqueue(action, payload)
            return False

        self._request_refresh()
        return outcome is ApplyOutcome.SUCCESS

    # ------------------------------------------------------------------
    # Remote replay
    # ------------------------------------------------------------------

    def _remote_call(self, action: SyncAction, payload: Dict[str, Any]):
        if action is SyncAction.ADD:
            return self._gateway.insert(payload["row"])
        if action is SyncAction.UPDATE:
            return self._gateway.update_job_details(
                payload["id"], payload["technician_logs"], payload["final_condition"]
            )
        if action is SyncAction.FIX:
            return self._gateway.update_status(
                payload["id"], payload["status"], payload["fixed_date"]
            )
        raise ValueError(f"Unknown sync action: {action}")

    async def _apply(self, action: SyncAction, payload: Dict[str, Any]) -> ApplyOutcome:
        try:
            action = SyncAction(action)
            call = self._remote_call(action, payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"❌ Malformed {action} payload, dropping: {e}")
            return ApplyOutcome.PERMANENT_FAILURE

        try:
            await call
        except RemoteError as e:
            if not e.permanent:
                logger.warning(f"⚠️ {action.value} failed, will retry: {e}")
                return ApplyOutcome.TRANSIENT_FAILURE
            if isinstance(e, DuplicateKeyError):
                logger.info(f"{action.value} already applied remotely: {e}")
            else:
                logger.error(f"❌ {action.value} rejected by the server, discarding: {e}")
                self._notify("error", f"{REJECTED_MESSAGE} ({e})")
            return ApplyOutcome.PERMANENT_FAILURE
        except Exception as e:
            logger.error(f"❌ Unexpected error during {action.value}: {e}")
            return ApplyOutcome.TRANSIENT_FAILURE
        return ApplyOutcome.SUCCESS

    async def _apply_task(self, task: SyncTask) -> ApplyOutcome:
        return await self._apply(task.action, task.payload)

    async def drain_queue(self) -> DrainResult:
        """Replay queued tasks in order until empty or a transient failure."""
        return await self._queue.drain(self._apply_task)

    # ------------------------------------------------------------------
    # Refetch
    # ------------------------------------------------------------------

    async def fetch_items(self, is_first_load: bool = False) -> bool:
        """
        Replace in-memory state with the remote collection.

        Drains the queue first unless this is the first load. On failure,
        falls back to the cached snapshot.

        Returns:
            True if the remote fetch succeeded
        """
        if not is_first_load and not self._queue.is_empty():
            await self.drain_queue()
        return await self._refetch(notify=not is_first_load)

    async def reconcile(self) -> bool:
        """Drain-then-refetch cycle, run when connectivity comes back."""
        await self.drain_queue()
        return await self._refetch(notify=True)

    async def _refetch(self, notify: bool) -> bool:
        async with self._fetch_lock:
            try:
                rows = await self._gateway.select_all()
                records = [record_from_row(row) for row in rows]
            except Exception as e:
                logger.error(f"Fetch error: {e}")
                self.load_from_cache()
                if notify:
                    self._notify("error", FETCH_FAILED_MESSAGE)
                return False

            self._cache.save(records)
            self.dispatch(ReplaceAll(tuple(records)))
            self._overlay_pending()
            logger.info(f"🔄 Fetched {len(records)} equipment records")
            return True

    def _overlay_pending(self) -> None:
        """Re-apply still-queued mutations on top of freshly fetched state."""
        for task in self._queue.peek_all():
            try:
                self.dispatch(self._task_to_action(task))
            except Exception as e:
                logger.debug(f"Skipping overlay of task {task.id}: {e}")

    @staticmethod
    def _task_to_action(task: SyncTask) -> Action:
        payload = task.payload
        if task.action is SyncAction.ADD:
            return AddRecord(record_from_row(payload["row"]))
        if task.action is SyncAction.UPDATE:
            return UpdateJobDetails(
                payload["id"],
                _coerce_logs(payload["technician_logs"]),
                _coerce_condition(payload["final_condition"]),
            )
        return MarkFixed(payload["id"], payload["fixed_date"])

    def load_from_cache(self) -> bool:
        """
        Replace in-memory state with the cached snapshot, if it holds records.

        Still-queued tasks are replayed on top of it, so unsynced local
        changes stay visible. A missing or empty cache leaves state
        untouched. A corrupt cache is deleted and also leaves state untouched.
        """
        try:
            cached = self._cache.load()
        except CacheCorruptedError as e:
            logger.error(f"❌ Discarding corrupt cache: {e}")
            self._cache.clear()
            return False

        if not cached:
            logger.info("No cached items to fall back to")
            return False

        self.dispatch(ReplaceAll(tuple(cached)))
        self._overlay_pending()
        logger.info(f"📦 Loaded {len(cached)} items from cache")
        return True
