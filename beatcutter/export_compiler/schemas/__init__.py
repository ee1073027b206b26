"""Export compiler schemas."""

from beatcutter.export_compiler.schemas.plan import RenderPlan
from beatcutter.export_compiler.schemas.settings import ExportSettings

__all__ = [
    "ExportSettings",
    "RenderPlan",
]
