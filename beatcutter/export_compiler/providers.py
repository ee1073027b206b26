"""Providers for export compiler services."""

from functools import cache

from beatcutter.export_compiler.service import ExportCompilerService, ExportService
from beatcutter.render.providers import render_runner


@cache
def export_compiler_service() -> ExportCompilerService:
    """Provide a cached instance of the ExportCompilerService."""
    return ExportCompilerService()


@cache
def export_service() -> ExportService:
    """Provide a cached instance of the ExportService."""
    return ExportService(export_compiler_service(), render_runner())
