"""Flat JSON (de)serialization of project state for the persistence layer."""

import json
import logging
from typing import Any

from beatcutter.timeline.schemas import PROJECT_SCHEMA_VERSION, ProjectState

logger = logging.getLogger(__name__)


def project_to_dict(project: ProjectState) -> dict[str, Any]:
    """Dump a project to JSON-compatible primitives."""
    return project.model_dump(mode="json")


def project_to_json(project: ProjectState) -> str:
    return project.model_dump_json()


def project_from_dict(data: dict[str, Any]) -> ProjectState:
    """Load a project, tolerating documents from newer versions.

    Unknown keys are ignored. A missing version tag is treated as version 1.

    Args:
        data: Previously dumped project.

    Returns:
        The validated ProjectState, tagged with the current schema version.
    """
    version = data.get("version", 1)
    if isinstance(version, int) and version > PROJECT_SCHEMA_VERSION:
        logger.warning(
            "Project schema version %d is newer than supported version %d; "
            "unknown fields will be dropped",
            version,
            PROJECT_SCHEMA_VERSION,
        )
    return ProjectState.model_validate({**data, "version": PROJECT_SCHEMA_VERSION})


def project_from_json(raw: str | bytes) -> ProjectState:
    return project_from_dict(json.loads(raw))
