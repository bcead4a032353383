"""Utility functions for the research service."""

from researcher.utils.debug import save_stage_snapshot
from researcher.utils.logging import bind_request_id, configure_logging, get_logger

__all__ = [
    "bind_request_id",
    "configure_logging",
    "get_logger",
    "save_stage_snapshot",
]
