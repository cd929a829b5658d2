# src/repairdesk/core/container.py
"""
Application Context

Owns every long-lived collaborator (local store, gateway, queue, cache,
engine, connectivity monitor) for one running application. Nothing here is
module-level: each FastAPI app, and each test, builds its own context.

Usage:
    context = AppContext(config)
    await context.start()      # raises ConfigurationError without credentials
    engine = context.engine
    await context.stop()
"""

import asyncio
import logging
from typing import Optional, Set

from ..config import RepairDeskConfig
from ..infrastructure.cache import LocalCacheStore
from ..infrastructure.connectivity import ConnectivityMonitor, HttpProbe
from ..infrastructure.local_store import SQLiteKeyValueStore
from ..infrastructure.supabase_client import create_equipment_gateway
from ..infrastructure.sync_queue import SyncQueue
from ..services.reconciliation import ReconciliationEngine
from .ports.database import EquipmentGateway
from .ports.storage import KeyValueStore

logger = logging.getLogger(__name__)


class AppContext:
    """
    Wiring and lifecycle for the sync layer.

    Adapters can be injected (tests pass a fake gateway, an in-memory
    store and a static monitor); anything missing is built from config.
    """

    def __init__(
        self,
        config: RepairDeskConfig,
        gateway: Optional[EquipmentGateway] = None,
        store: Optional[KeyValueStore] = None,
        monitor: Optional[ConnectivityMonitor] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.store = store
        self.monitor = monitor
        self.engine: Optional[ReconciliationEngine] = None
        self._refresh_tasks: Set[asyncio.Task] = set()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """
        Build the sync layer and start watching connectivity.

        Raises:
            ConfigurationError: Supabase credentials are missing (no network call is made)
        """
        if self._started:
            return

        if self.gateway is None:
            self.gateway = await create_equipment_gateway(self.config.supabase)

        if self.store is None:
            self.store = SQLiteKeyValueStore(self.config.sync.local_db_path)

        sync = self.config.sync
        self.engine = ReconciliationEngine(
            self.gateway,
            SyncQueue(self.store, namespace=sync.namespace),
            LocalCacheStore(self.store, namespace=sync.namespace),
            job_card_prefix=sync.job_card_prefix,
            max_notices=sync.max_notices,
        )
        self.engine.add_refresh_listener(self._schedule_refresh)

        if self.monitor is None:
            self.monitor = self._build_monitor()
        self.monitor.on_online(self._came_online)
        self.monitor.on_offline(self._went_offline)
        self.monitor.on_heartbeat(self._heartbeat)

        self._started = True
        await self.monitor.start()

        if not self.monitor.online:
            logger.warning("⚠️ Starting offline, serving cached items")
            self.engine.load_from_cache()

        logger.info(f"✅ RepairDesk context started ({self.engine.queue.pending_count} queued tasks)")

    async def stop(self) -> None:
        """Stop the monitor, finish in-flight refreshes and release resources."""
        if not self._started:
            return
        self._started = False

        if self.monitor is not None:
            await self.monitor.stop()

        if self._refresh_tasks:
            await asyncio.gather(*self._refresh_tasks, return_exceptions=True)
            self._refresh_tasks.clear()

        if self.gateway is not None:
            await self.gateway.close()
        if self.store is not None:
            self.store.close()
        logger.info("RepairDesk context stopped")

    def _build_monitor(self) -> ConnectivityMonitor:
        supabase = self.config.supabase
        probe = HttpProbe(
            f"{supabase.url.rstrip('/')}/rest/v1/",
            headers={"apikey": supabase.key},
            timeout=self.config.connectivity.probe_timeout,
        )
        return ConnectivityMonitor(probe, check_interval=self.config.connectivity.check_interval)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _schedule_refresh(self) -> None:
        task = asyncio.create_task(self.engine.fetch_items())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _came_online(self) -> None:
        self.engine.set_online(True)
        await self.engine.reconcile()

    async def _went_offline(self) -> None:
        self.engine.set_online(False)

    async def _heartbeat(self) -> None:
        if not self.engine.queue.is_empty():
            logger.info("Retrying queued sync tasks")
            await self.engine.fetch_items()

    async def wait_for_refreshes(self) -> None:
        """Await refreshes scheduled so far (used by the refresh endpoint and tests)."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)


def get_context(request) -> AppContext:
    """The AppContext owned by the FastAPI app serving this request."""
    return request.app.state.context
