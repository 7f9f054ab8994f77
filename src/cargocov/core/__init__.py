"""Core module exports."""

from cargocov.core.errors import (
    CargoCovError,
    CommandFailedError,
    ConfigError,
    ErrorCode,
    IoError,
    ToolInstallError,
    ToolInvocationError,
    ToolNotFoundError,
)
from cargocov.core.logging import (
    clear_run_id,
    configure_logging,
    get_log_file_path,
    get_logger,
    get_run_id,
    set_run_id,
    stage_context,
)
from cargocov.core.progress import status, task

__all__ = [
    # Errors
    "CargoCovError",
    "CommandFailedError",
    "ConfigError",
    "ErrorCode",
    "IoError",
    "ToolInstallError",
    "ToolInvocationError",
    "ToolNotFoundError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_log_file_path",
    "get_logger",
    "get_run_id",
    "set_run_id",
    "stage_context",
    # Progress
    "status",
    "task",
]
