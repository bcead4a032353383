"""Debug utilities for saving intermediate pipeline data."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from researcher.config import settings
from researcher.utils.logging import get_logger

logger = get_logger(__name__)


def save_stage_snapshot(
    request_id: str,
    stage: str,
    data: BaseModel | dict[str, Any],
    output_dir: Path | None = None,
) -> Path | None:
    """Save a stage result to a local JSON file.

    Only active when ``DEBUG_SNAPSHOTS`` is enabled. Write failures are
    logged and never interrupt the workflow.

    Args:
        request_id: The research session the data belongs to
        stage: The pipeline stage (e.g., "semantic_map", "report")
        data: A model or plain dict to serialize
        output_dir: Override for the configured debug directory

    Returns:
        Path to the saved file, or None when disabled or failed
    """
    if not settings.debug_snapshots:
        return None

    if isinstance(data, BaseModel):
        payload = data.model_dump(mode="json", by_alias=True)
    else:
        payload = data

    base_dir = output_dir or Path(settings.debug_directory)
    snapshot_dir = base_dir / request_id
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    filepath = snapshot_dir / f"{stage}_{timestamp}.json"

    try:
        snapshot_dir.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
    except OSError as e:
        logger.warning(
            "debug.snapshot_failed",
            request_id=request_id,
            stage=stage,
            error=str(e),
        )
        return None

    logger.debug("debug.snapshot_saved", request_id=request_id, path=str(filepath))
    return filepath
