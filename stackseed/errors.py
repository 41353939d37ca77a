"""Exception hierarchy for stackseed.

Every failure raised by the pipeline derives from :class:`StackseedError` and
carries the name of the ``stage`` that produced it, so the Run Report can say
exactly where a run stopped.

- :class:`ConfigurationError` -- bad user input, detected before any write.
- :class:`GenerationError` -- materialization failed; a partial tree may exist.
- :class:`ToolchainError` -- an external step failed or could not start.
- :class:`InternalError` -- a defect in the template catalog or step chain.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


class ConfigReason(str, Enum):
    """Why the Configuration Resolver rejected an invocation."""

    INVALID_NAME = "InvalidName"
    TARGET_EXISTS = "TargetExists"
    UNKNOWN_OPTION = "UnknownOption"
    MISSING_ARGUMENT = "MissingArgument"


class StackseedError(Exception):
    """Base class for every error raised by the scaffolding pipeline."""

    stage: str = "pipeline"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        """Short machine-readable error name used in reports."""
        return type(self).__name__


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(StackseedError):
    """Raised when invocation arguments cannot produce a valid configuration."""

    stage = "configuration"

    def __init__(self, reason: ConfigReason, message: str) -> None:
        self.reason = reason
        super().__init__(message)

    @property
    def kind(self) -> str:
        return self.reason.value


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerationError(StackseedError):
    """Raised when the target tree cannot be materialized."""

    stage = "generation"

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        self.path = path
        # Files already on disk when the error was raised.
        self.written: list[Path] = []
        super().__init__(message)


class DirectoryCreateError(GenerationError):
    """A directory inside the target could not be created."""


class FileWriteError(GenerationError):
    """A rendered file could not be written or its permissions applied."""


class TemplateCollisionError(GenerationError):
    """Two rendered files resolve to the same destination path."""

    def __init__(self, path: str, template_ids: list[str]) -> None:
        self.template_ids = template_ids
        super().__init__(
            f"Templates {', '.join(template_ids)} all resolve to {path}",
            Path(path),
        )


# ---------------------------------------------------------------------------
# Toolchain
# ---------------------------------------------------------------------------


class ToolchainError(StackseedError):
    """Raised when an external toolchain step fails."""

    stage = "toolchain"

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(message)


class ToolUnavailable(ToolchainError):
    """The executable required by a step is not on ``PATH``."""

    def __init__(self, step: str, tool: str) -> None:
        self.tool = tool
        super().__init__(step, f"Required tool not found on PATH: {tool}")


class StepFailed(ToolchainError):
    """A step ran to completion but exited non-zero."""

    def __init__(self, step: str, returncode: int, detail: str = "") -> None:
        self.returncode = returncode
        message = f"Step '{step}' exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(step, message)


class StepTimedOut(ToolchainError):
    """A step exceeded its configured wall-clock budget."""

    def __init__(self, step: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(step, f"Step '{step}' timed out after {timeout:g}s")


# ---------------------------------------------------------------------------
# Internal defects
# ---------------------------------------------------------------------------


class InternalError(StackseedError):
    """A programming defect in stackseed itself, never a user error."""

    stage = "internal"


class TemplateError(InternalError):
    """A template references a placeholder the configuration does not define."""

    def __init__(self, template_id: str, detail: str) -> None:
        self.template_id = template_id
        self.detail = detail
        super().__init__(f"Template '{template_id}' failed to render: {detail}")


class ChainDefinitionError(InternalError):
    """A toolchain step chain is malformed (duplicate ids, forward deps)."""
