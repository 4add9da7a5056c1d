# crypto_tracker/jobs/poller.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from crypto_tracker.utils.time import iso_z_from_epoch

logger = logging.getLogger("crypto_tracker.poller")

DEFAULT_POLL_SECONDS = 30.0

Job = Callable[[], Awaitable[Any]]


@dataclass
class PollStats:
    ticks: int = 0
    last_run_ts: Optional[float] = None
    last_success_ts: Optional[float] = None
    last_success_ms: Optional[int] = None
    last_error_ts: Optional[float] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0


class PollScheduler:
    """
    Runs ``job`` every ``interval_seconds`` while running.

    There is at most one timer: ``start()`` cancels the previous one before
    scheduling a new one. Each tick runs the job in its own task, so a slow job
    never delays the next tick. ``generation`` changes on every start/stop;
    jobs compare it before and after awaiting I/O to detect that they went stale.
    """

    def __init__(self, job: Job, interval_seconds: float = DEFAULT_POLL_SECONDS, name: str = "market-poll") -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._job = job
        self.interval_seconds = float(interval_seconds)
        self.name = name
        self.generation = 0
        self.stats = PollStats()
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    # ----------------------------
    # state transitions
    # ----------------------------
    def start(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self.generation += 1
        self._timer = asyncio.create_task(self._timer_loop(), name=f"{self.name}:timer")
        logger.info("poller started | %s | interval_s=%s | gen=%s", self.name, self.interval_seconds, self.generation)

    def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self.generation += 1
        logger.info("poller stopped | %s | gen=%s", self.name, self.generation)

    async def set_visibility(self, visible: bool) -> None:
        if not visible:
            self.stop()
            return
        self.start()
        await self.run_now()

    async def shutdown(self) -> None:
        timer = self._timer
        self.stop()
        tasks = list(self._inflight)
        for t in tasks:
            t.cancel()
        if timer is not None:
            tasks.append(timer)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    # ----------------------------
    # ticks
    # ----------------------------
    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            task = asyncio.create_task(self.run_now(), name=f"{self.name}:tick")
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def run_now(self) -> None:
        """Run the job once; failures are logged and recorded, never raised."""
        s = self.stats
        s.ticks += 1
        s.last_run_ts = time.time()
        t0 = time.perf_counter()

        try:
            await self._job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            s.last_error_ts = time.time()
            s.last_error = repr(e)[:300]
            s.consecutive_failures += 1
            logger.exception("poll tick failed | %s | %dms", self.name, int((time.perf_counter() - t0) * 1000))
            return

        s.last_success_ts = time.time()
        s.last_success_ms = int((time.perf_counter() - t0) * 1000)
        s.consecutive_failures = 0
        logger.debug("poll tick done | %s | %dms", self.name, s.last_success_ms)

    def info(self) -> Dict[str, Any]:
        s = self.stats
        return {
            "ok": self.running,
            "running": self.running,
            "name": self.name,
            "interval_s": self.interval_seconds,
            "generation": self.generation,
            "inflight": self.inflight,
            "ticks": s.ticks,
            "last_run_iso": iso_z_from_epoch(s.last_run_ts),
            "last_success_iso": iso_z_from_epoch(s.last_success_ts),
            "last_success_ms": s.last_success_ms,
            "last_error_iso": iso_z_from_epoch(s.last_error_ts),
            "last_error": s.last_error,
            "consecutive_failures": s.consecutive_failures,
        }
