"""cargocov error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Toolchain
- 4xxx: Command
- 5xxx: I/O
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_WORKSPACE_NOT_FOUND = 2003

    # Toolchain (3xxx)
    TOOL_INVOCATION_FAILED = 3001
    TOOL_NOT_FOUND = 3002
    TOOL_INSTALL_FAILED = 3003

    # Command (4xxx)
    COMMAND_FAILED = 4001
    COMMAND_SPAWN_FAILED = 4002

    # I/O (5xxx)
    IO_ERROR = 5001


@dataclass(frozen=True)
class CargoCovError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'TOOL_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CargoCovError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def workspace_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_WORKSPACE_NOT_FOUND,
            message=f"No Cargo.toml found at or above {path}",
            details={"path": path},
        )


class IoError(CargoCovError):
    """Filesystem failure qualified by the path it happened on."""

    @classmethod
    def from_os_error(cls, operation: str, path: str | Path, error: OSError) -> "IoError":
        reason = error.strerror or str(error)
        return cls(
            code=ErrorCode.IO_ERROR,
            message=f"{operation} failed for {path}: {reason}",
            details={"operation": operation, "path": str(path), "reason": reason},
        )

    @property
    def path(self) -> str:
        return str(self.details.get("path", ""))


class CommandFailedError(CargoCovError):
    """An external tool could not be run or exited unsuccessfully."""

    @classmethod
    def exited(cls, tool: str, command: list[str], returncode: int) -> "CommandFailedError":
        return cls(
            code=ErrorCode.COMMAND_FAILED,
            message=f"{tool} command failed with exit code {returncode}",
            details={"tool": tool, "command": command, "returncode": returncode},
        )

    @classmethod
    def spawn_failed(cls, tool: str, command: list[str], reason: str) -> "CommandFailedError":
        return cls(
            code=ErrorCode.COMMAND_SPAWN_FAILED,
            message=f"{tool} command could not be started: {reason}",
            details={"tool": tool, "command": command, "reason": reason},
        )

    @property
    def tool(self) -> str:
        return str(self.details.get("tool", ""))


class ToolInvocationError(CargoCovError):
    """A toolchain query (e.g. printing the sysroot) failed."""

    @classmethod
    def failed(cls, name: str, reason: str) -> "ToolInvocationError":
        return cls(
            code=ErrorCode.TOOL_INVOCATION_FAILED,
            message=f"'{name}' failed: {reason}",
            details={"name": name, "reason": reason},
        )


class ToolNotFoundError(CargoCovError):
    """A required executable is missing from the toolchain."""

    @classmethod
    def not_found(cls, name: str, root: str | Path) -> "ToolNotFoundError":
        return cls(
            code=ErrorCode.TOOL_NOT_FOUND,
            message=f"Executable '{name}' not found under {root}",
            details={"name": name, "root": str(root)},
        )


class ToolInstallError(CargoCovError):
    """Installing a missing tool did not make it usable."""

    @classmethod
    def install_failed(cls, name: str, reason: str) -> "ToolInstallError":
        return cls(
            code=ErrorCode.TOOL_INSTALL_FAILED,
            message=f"Failed to install '{name}': {reason}",
            retryable=True,
            details={"name": name, "reason": reason},
        )
