"""
Dependency injection for the API service.
Provides the refresh scheduler (and through it the latest snapshot) to route handlers.
"""
from __future__ import annotations

from scheduler.service import RefreshScheduler

# Module-level singleton, initialized at startup
_scheduler: RefreshScheduler | None = None


def init_dependencies(scheduler: RefreshScheduler | None) -> None:
    """Initialize the module-level singleton. Called once at startup."""
    global _scheduler
    _scheduler = scheduler


def get_scheduler() -> RefreshScheduler:
    """FastAPI dependency: returns the shared RefreshScheduler."""
    if _scheduler is None:
        raise RuntimeError("RefreshScheduler not initialized, call init_dependencies first")
    return _scheduler
