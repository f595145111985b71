# ============================================================================
# SCHEDULER MODULE
# ============================================================================
# STATUS: Core - Background jobs
# PURPOSE: Periodic reaping of expired deployments
# CREATED: 16 OCT 2026
# ============================================================================
"""
Scheduler Module

Usage:
    from scheduler import ReaperLoop

    loop = ReaperLoop(manager, on_expired=teardown)
    await loop.start()
"""

from .reaper_loop import ExpiredCallback, ReaperLoop

__all__ = ["ReaperLoop", "ExpiredCallback"]
