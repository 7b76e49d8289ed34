"""
Centralized logging utilities for pureescpos.

Provides standardized logging functions for common scenarios to reduce duplication
and ensure consistent log formatting across the codebase.
"""

import logging
from typing import Any

__all__ = [
    "log_capture_event",
    "log_connection_event",
    "log_job_event",
    "log_session_error",
    "log_parsing_warning",
    "log_data_processing",
]


def log_capture_event(
    logger: logging.Logger, event_type: str, details: str = ""
) -> None:
    """Log capture listener lifecycle events with consistent format."""
    detail_str = f": {details}" if details else ""
    logger.info(f"[CAPTURE] {event_type}{detail_str}")


def log_connection_event(
    logger: logging.Logger, event_type: str, host: str = "", port: int = 0
) -> None:
    """Log connection events with consistent format."""
    if host and port:
        logger.info(f"[CONNECTION] {event_type} - {host}:{port}")
    else:
        logger.info(f"[CONNECTION] {event_type}")


def log_job_event(
    logger: logging.Logger, event_type: str, job_id: int = 0, details: str = ""
) -> None:
    """Log job lifecycle events (committed, dropped, evicted)."""
    job_str = f" #{job_id}" if job_id else ""
    detail_str = f": {details}" if details else ""
    logger.info(f"[JOB] {event_type}{job_str}{detail_str}")


def log_session_error(
    logger: logging.Logger, action_name: str, error: Exception
) -> None:
    """Log action errors with consistent format."""
    logger.error(f"Error executing {action_name} action: {error}")


def log_parsing_warning(logger: logging.Logger, operation: str, reason: str) -> None:
    """Log parsing warnings with consistent format."""
    logger.warning(f"{operation}: {reason}")


def log_data_processing(
    logger: logging.Logger, operation: str, data_info: str = ""
) -> None:
    """Log data processing operations with consistent format."""
    info_str = f" - {data_info}" if data_info else ""
    logger.debug(f"[DATA] {operation}{info_str}")
