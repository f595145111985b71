# ============================================================================
# REAPER LOOP
# ============================================================================
# STATUS: Core - Periodic teardown initiation
# PURPOSE: Poll for expired deployments and move them into killing
# CREATED: 16 OCT 2026
# ============================================================================
"""
ReaperLoop

Background asyncio task around ReaperService. Each cycle:

1. retry handoffs that failed on an earlier cycle
2. find_expired_deployments()
3. reap_deployment(id) for every candidate (live -> killing, only if the
   lease horizon is still past at that moment)
4. await on_expired(candidate), the hook for the external teardown worker

A candidate whose lease was renewed after the scan, or that another caller
already moved on, is skipped. A failing on_expired is logged and counted,
and the candidate, already killing, stays queued and is handed over again
on the next cycle. Any other error ends that cycle, is logged and counted,
and the loop keeps polling.

The loop does nothing when the reaper is disabled in config
(REAPER_ENABLED=false).

Usage:
    loop = ReaperLoop(manager, poll_interval=60, on_expired=enqueue_teardown)
    await loop.start()
    ...
    await loop.stop()
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.logging import ComponentType, get_logger, log_context
from core.models import ExpiredDeployment
from services.manager import DeploymentManager

logger = get_logger(__name__, ComponentType.REAPER)

ExpiredCallback = Callable[[ExpiredDeployment], Awaitable[None]]


class ReaperLoop:
    """Periodically reaps live deployments with no protecting lease."""

    def __init__(
        self,
        manager: DeploymentManager,
        poll_interval: Optional[float] = None,
        on_expired: Optional[ExpiredCallback] = None,
    ):
        """
        Args:
            manager: Lifecycle facade to reap through
            poll_interval: Seconds between cycles; defaults to the
                manager's reaper config
            on_expired: Awaited once per deployment moved to killing
        """
        self.manager = manager
        self.poll_interval = (
            poll_interval
            if poll_interval is not None
            else manager.defaults.reaper.poll_interval_seconds
        )
        self.on_expired = on_expired

        self._running = False
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        self._pending_handoff: Dict[int, ExpiredDeployment] = {}

        self._cycles = 0
        self._reaped = 0
        self._skipped = 0
        self._errors = 0
        self._started_at: Optional[datetime] = None
        self._last_cycle_at: Optional[datetime] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the background task. A second call, or a disabled reaper, is ignored."""
        if not self.manager.defaults.reaper.enabled:
            logger.info("Reaper disabled (REAPER_ENABLED=false), not starting")
            return

        if self._running:
            logger.warning("Reaper loop already running")
            return

        self._running = True
        self._stop_event.clear()
        self._started_at = datetime.now(timezone.utc)
        self._task = asyncio.create_task(self._main_loop())
        logger.info(f"Reaper loop started (poll_interval={self.poll_interval}s)")

    async def stop(self) -> None:
        """Signal the loop and wait for the current cycle to finish."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(
            f"Reaper loop stopped (cycles={self._cycles}, reaped={self._reaped}, "
            f"errors={self._errors})"
        )

    async def _main_loop(self) -> None:
        while self._running and not self._stop_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self._errors += 1
                logger.exception(f"Error in reaper cycle: {e}")

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.poll_interval,
                )
                break
            except asyncio.TimeoutError:
                pass

    # =========================================================================
    # CYCLE
    # =========================================================================

    async def run_once(self) -> List[ExpiredDeployment]:
        """
        One sweep.

        Returns:
            Candidates this cycle moved to killing
        """
        for candidate in list(self._pending_handoff.values()):
            await self._hand_off(candidate)

        expired = await self.manager.find_expired_deployments()
        reaped = []

        for candidate in expired:
            with log_context(
                locator=candidate.locator,
                deployment_id=candidate.deployment_id,
                server=candidate.server.address,
            ):
                if not await self.manager.reap_deployment(candidate.deployment_id):
                    self._skipped += 1
                    continue

                reaped.append(candidate)
                self._reaped += 1
                self._pending_handoff[candidate.deployment_id] = candidate
                await self._hand_off(candidate)

        self._cycles += 1
        self._last_cycle_at = datetime.now(timezone.utc)
        return reaped

    async def _hand_off(self, candidate: ExpiredDeployment) -> bool:
        """
        Pass a killing deployment to on_expired.

        Returns:
            True once handed over; False keeps it queued for the next cycle
        """
        if self.on_expired is not None:
            with log_context(
                locator=candidate.locator,
                deployment_id=candidate.deployment_id,
                server=candidate.server.address,
            ):
                try:
                    await self.on_expired(candidate)
                except Exception as e:
                    self._errors += 1
                    logger.exception(f"Teardown handoff failed, will retry: {e}")
                    return False

        self._pending_handoff.pop(candidate.deployment_id, None)
        return True

    # =========================================================================
    # STATS
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "poll_interval": self.poll_interval,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "cycles": self._cycles,
            "reaped": self._reaped,
            "skipped": self._skipped,
            "pending_handoff": len(self._pending_handoff),
            "errors": self._errors,
            "last_cycle_at": self._last_cycle_at.isoformat() if self._last_cycle_at else None,
        }


__all__ = ["ReaperLoop", "ExpiredCallback"]
