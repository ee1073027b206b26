"""Providers for the auto-sync planner service."""

from functools import cache

from beatcutter.auto_sync.service import AutoSyncPlannerService


@cache
def auto_sync_planner_service() -> AutoSyncPlannerService:
    """Provide a cached instance of the AutoSyncPlannerService."""
    return AutoSyncPlannerService()
