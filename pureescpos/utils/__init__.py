"""
Utilities package for pureescpos.

Contains common utility functions used across the pureescpos codebase.
"""

from .logging_utils import (
    log_capture_event,
    log_connection_event,
    log_data_processing,
    log_job_event,
    log_parsing_warning,
    log_session_error,
)

__all__ = [
    "log_capture_event",
    "log_connection_event",
    "log_job_event",
    "log_session_error",
    "log_parsing_warning",
    "log_data_processing",
]
