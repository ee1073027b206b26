"""Providers for the render layer."""

from functools import cache

from beatcutter.render.job_store import RenderJobStore
from beatcutter.render.runner import RenderRunner


@cache
def render_runner() -> RenderRunner:
    """Provide a cached instance of the RenderRunner."""
    return RenderRunner()


@cache
def render_job_store() -> RenderJobStore:
    """Provide a cached instance of the RenderJobStore."""
    return RenderJobStore()
