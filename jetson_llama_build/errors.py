"""Error definitions for jetson_llama_build.

Every failure the build pipeline can surface carries a stable ``code``
string so callers (the CLI, JSON output) can handle it programmatically,
and an ``exit_code`` the process should terminate with.
"""

from __future__ import annotations

from collections.abc import Sequence

# Stable error codes
UNKNOWN_DEVICE = "unknown_device"
MISSING_DEPENDENCY = "missing_dependency"
EXTERNAL_PROCESS_FAILED = "external_process_failed"


class BuildToolError(Exception):
    """Base class for errors raised by the build pipeline."""

    code = "build_tool_error"

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": str(self),
            "exit_code": self.exit_code,
        }


class UnknownDeviceError(BuildToolError):
    """Raised when a device token matches no known Jetson alias."""

    code = UNKNOWN_DEVICE

    def __init__(self, token: str, supported: Sequence[str]) -> None:
        super().__init__(f"Unknown device: {token}")
        self.token = token
        self.supported = list(supported)

    def to_dict(self) -> dict[str, object]:
        result = super().to_dict()
        result["supported"] = self.supported
        return result


class MissingDependencyError(BuildToolError):
    """Raised when a required host tool is not on PATH."""

    code = MISSING_DEPENDENCY

    def __init__(self, tool: str, remediation: str) -> None:
        super().__init__(f"{tool} not found. {remediation}")
        self.tool = tool
        self.remediation = remediation

    def to_dict(self) -> dict[str, object]:
        result = super().to_dict()
        result["tool"] = self.tool
        result["remediation"] = self.remediation
        return result


class ExternalProcessError(BuildToolError):
    """Raised when cmake (or another delegated tool) exits non-zero.

    The external tool's own output has already been streamed to the
    operator, so only the command and its exit status are recorded here.
    """

    code = EXTERNAL_PROCESS_FAILED

    def __init__(self, command: str, exit_code: int, reason: str | None = None) -> None:
        message = reason or f"Command failed with exit code {exit_code}: {command}"
        super().__init__(message, exit_code=exit_code)
        self.command = command

    def to_dict(self) -> dict[str, object]:
        result = super().to_dict()
        result["command"] = self.command
        return result


__all__ = [
    "EXTERNAL_PROCESS_FAILED",
    "MISSING_DEPENDENCY",
    "UNKNOWN_DEVICE",
    "BuildToolError",
    "ExternalProcessError",
    "MissingDependencyError",
    "UnknownDeviceError",
]
