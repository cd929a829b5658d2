# src/repairdesk/infrastructure/connectivity.py
"""
Connectivity Monitor

Periodically probes the Supabase REST endpoint and fires callbacks on
online/offline transitions.

- came-online:  callbacks run (the app drains the sync queue, then refetches)
- went-offline: callbacks run (the app only flips its status flag)
- still online: heartbeat callbacks run (the app retries a non-empty queue)

On start, if the first probe succeeds, the came-online callbacks fire
unconditionally so tasks queued in a previous session get replayed.

Usage:
    probe = HttpProbe(f"{url}/rest/v1/", headers={"apikey": key})
    monitor = ConnectivityMonitor(probe, check_interval=30)
    monitor.on_online(engine.reconcile)
    await monitor.start()
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
Callback = Callable[[], Awaitable[None]]


class HttpProbe:
    """
    Reachability check against an HTTP endpoint.

    Any response below 500 means the service answered, so we are online.
    Transport errors, timeouts and 5xx mean offline.
    """

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __call__(self) -> bool:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await self._client.get(self._url, headers=self._headers)
        except httpx.HTTPError as e:
            logger.debug(f"Probe {self._url} failed: {e}")
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class ConnectivityMonitor:
    """Background monitor for connectivity to the remote store."""

    def __init__(self, probe: Probe, check_interval: float = 30.0):
        """
        Args:
            probe: Coroutine returning True when the remote store is reachable
            check_interval: Seconds between probes (0 disables the polling loop)
        """
        self._probe = probe
        self._check_interval = check_interval
        self._online = False
        self._on_online: List[Callback] = []
        self._on_offline: List[Callback] = []
        self._on_heartbeat: List[Callback] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def online(self) -> bool:
        return self._online

    def on_online(self, callback: Callback) -> None:
        self._on_online.append(callback)

    def on_offline(self, callback: Callback) -> None:
        self._on_offline.append(callback)

    def on_heartbeat(self, callback: Callback) -> None:
        self._on_heartbeat.append(callback)

    async def start(self) -> None:
        """Probe once, fire came-online if reachable, then start polling."""
        self._online = await self._safe_probe()
        logger.info(f"Connectivity at startup: {'online' if self._online else 'offline'}")
        if self._online:
            await self._fire(self._on_online, "came-online")

        if self._check_interval > 0 and self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop polling."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        close = getattr(self._probe, "aclose", None)
        if close is not None:
            await close()

    async def check_now(self) -> bool:
        """Probe immediately and apply the result."""
        online = await self._safe_probe()
        await self.set_online(online)
        return online

    async def set_online(self, online: bool) -> None:
        """Apply an observed connectivity state, firing transition callbacks."""
        previous = self._online
        self._online = online

        if previous == online:
            if online:
                await self._fire(self._on_heartbeat, "heartbeat")
            return

        if online:
            logger.info("🌐 Connectivity restored")
            await self._fire(self._on_online, "came-online")
        else:
            logger.warning("⚠️ Connectivity lost")
            await self._fire(self._on_offline, "went-offline")

    async def _safe_probe(self) -> bool:
        try:
            return bool(await self._probe())
        except Exception as e:
            logger.warning(f"Connectivity probe raised: {e}")
            return False

    async def _fire(self, callbacks: List[Callback], label: str) -> None:
        for callback in callbacks:
            try:
                await callback()
            except Exception as e:
                logger.error(f"Connectivity {label} callback failed: {e}")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._check_interval)
            await self.check_now()
