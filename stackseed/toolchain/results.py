"""Toolchain step results and the final Run Report.

Provides Pydantic v2 models for the state of every toolchain step, the chain
as a whole, and the aggregate :class:`RunReport` produced at the end of a
generation run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, computed_field


# ---------------------------------------------------------------------------
# Status enums
# ---------------------------------------------------------------------------

class StepStatus(str, Enum):
    """Lifecycle of a single toolchain step."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    NOT_RUN = "NotRun"


class ChainStatus(str, Enum):
    """Lifecycle of the whole step chain."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    ABORTED = "Aborted"


class RunStatus(str, Enum):
    """Overall outcome of one generation run."""

    SUCCESS = "Success"
    PARTIAL_FAILURE = "PartialFailure"
    ABORTED = "Aborted"


# ---------------------------------------------------------------------------
# Per-step result
# ---------------------------------------------------------------------------

class StepResult(BaseModel):
    """Recorded state of one toolchain step."""

    name: str = Field(..., description="Step identifier, e.g. 'install-dependencies'")
    command: list[str] = Field(default_factory=list)
    working_directory: str = Field(default=".", description="Relative to the target root")
    fatal: bool = Field(default=True, description="Whether failure aborts the chain")
    depends_on: list[str] = Field(default_factory=list)
    status: StepStatus = Field(default=StepStatus.PENDING)
    returncode: Optional[int] = Field(default=None)
    duration_seconds: float = Field(default=0.0, ge=0.0)
    error_kind: str = Field(default="", description="Error class name, e.g. 'ToolUnavailable'")
    error: str = Field(default="", description="Human-readable failure description")
    output_tail: str = Field(default="", description="Last lines of captured output")

    @computed_field  # type: ignore[misc]
    @property
    def is_terminal(self) -> bool:
        return self.status in (StepStatus.SUCCEEDED, StepStatus.FAILED)


class ChainResult(BaseModel):
    """State of the whole chain after the orchestrator returns."""

    status: ChainStatus = Field(default=ChainStatus.NOT_STARTED)
    steps: list[StepResult] = Field(default_factory=list)
    aborted_at: Optional[str] = Field(default=None, description="Name of the fatal step that stopped the chain")

    def step(self, name: str) -> StepResult:
        for result in self.steps:
            if result.name == name:
                return result
        raise KeyError(name)


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------

class RunReport(BaseModel):
    """Final structured outcome of one generation invocation."""

    project_name: str = Field(default="")
    target_path: str = Field(default="")
    status: RunStatus = Field(...)
    failed_stage: Optional[str] = Field(
        default=None, description="'configuration', 'generation', 'toolchain' or 'internal'"
    )
    failed_step: Optional[str] = Field(default=None, description="First step that failed, if any")
    error_kind: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)
    steps: list[StepResult] = Field(default_factory=list)
    files_written: list[str] = Field(default_factory=list)
    started_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    finished_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @computed_field  # type: ignore[misc]
    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.SUCCESS

    def step_statuses(self) -> dict[str, StepStatus]:
        return {s.name: s.status for s in self.steps}

    # -- Serialisation helpers -----------------------------------------------

    def to_json(self, indent: int = 2) -> str:
        """Serialise the full report to a JSON string."""
        return self.model_dump_json(indent=indent)

    def save(self, path: Path) -> None:
        """Persist the report to a JSON file, creating parent directories as needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "RunReport":
        """Load a previously-saved report from a JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

