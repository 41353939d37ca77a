"""Turns chain state into the final :class:`RunReport`.

``Success`` is only reported when every declared step reached
``Succeeded``.  Steps that never ran are reported as ``NotRun``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from rich.panel import Panel
from rich.table import Table

from stackseed.config import ProjectConfig
from stackseed.errors import GenerationError, StackseedError
from stackseed.scaffolder.materializer import MaterializedTree
from stackseed.scaffolder.templates import EXAMPLE_PACKAGE, SHARED_PACKAGE
from stackseed.utils import console, format_duration

from .results import ChainResult, ChainStatus, RunReport, RunStatus, StepResult, StepStatus
from .steps import ToolchainStep

_STATUS_STYLES: dict[StepStatus, str] = {
    StepStatus.SUCCEEDED: "green",
    StepStatus.FAILED: "red",
    StepStatus.NOT_RUN: "dim",
    StepStatus.PENDING: "dim",
    StepStatus.RUNNING: "yellow",
}

_RUN_STYLES: dict[RunStatus, str] = {
    RunStatus.SUCCESS: "bold green",
    RunStatus.PARTIAL_FAILURE: "bold yellow",
    RunStatus.ABORTED: "bold red",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _not_run(step: ToolchainStep) -> StepResult:
    return StepResult(
        name=step.name,
        command=list(step.command),
        working_directory=step.working_directory,
        fatal=step.fatal,
        depends_on=list(step.depends_on),
        status=StepStatus.NOT_RUN,
    )


class VerificationRunner:
    """Builds and renders Run Reports."""

    # -- Report construction -----------------------------------------------

    def from_chain(
        self,
        config: ProjectConfig,
        chain: ChainResult,
        tree: MaterializedTree,
        started_at: Optional[str] = None,
    ) -> RunReport:
        """Report for a run that materialized the tree and ran the chain."""
        steps: list[StepResult] = []
        for result in chain.steps:
            copy = result.model_copy()
            if copy.status in (StepStatus.PENDING, StepStatus.RUNNING):
                copy.status = StepStatus.NOT_RUN
            steps.append(copy)

        report = RunReport(
            project_name=config.name,
            target_path=str(config.target_path),
            status=RunStatus.SUCCESS,
            steps=steps,
            files_written=tree.relative_files(),
            started_at=started_at or _now(),
        )

        if all(s.status is StepStatus.SUCCEEDED for s in steps):
            return report

        fatal_failure = next(
            (s for s in steps if s.fatal and s.status is not StepStatus.SUCCEEDED), None
        )
        if chain.status is ChainStatus.ABORTED and chain.aborted_at:
            fatal_failure = next(s for s in steps if s.name == chain.aborted_at)

        if fatal_failure is not None:
            culprit = fatal_failure
            report.status = RunStatus.ABORTED
        else:
            culprit = next(s for s in steps if s.status is not StepStatus.SUCCEEDED)
            report.status = RunStatus.PARTIAL_FAILURE

        report.failed_stage = "toolchain"
        report.failed_step = culprit.name
        report.error_kind = culprit.error_kind or None
        report.error = culprit.error or None
        return report

    def from_error(
        self,
        error: StackseedError,
        config: Optional[ProjectConfig] = None,
        steps: Sequence[ToolchainStep] = (),
        started_at: Optional[str] = None,
        tree: Optional[MaterializedTree] = None,
    ) -> RunReport:
        """Report for a run stopped by an error before the chain could run.

        *tree* is the materialized tree when the error came after writing;
        its files are listed in the report.
        """
        files: list[str] = []
        if tree is not None:
            files = tree.relative_files()
        elif isinstance(error, GenerationError) and config is not None:
            files = [p.relative_to(config.target_path).as_posix() for p in error.written]
        return RunReport(
            project_name=config.name if config else "",
            target_path=str(config.target_path) if config else "",
            status=RunStatus.ABORTED,
            failed_stage=error.stage,
            error_kind=error.kind,
            error=error.message,
            steps=[_not_run(s) for s in steps],
            files_written=files,
            started_at=started_at or _now(),
        )

    # -- Rendering ---------------------------------------------------------

    def render(self, report: RunReport, config: Optional[ProjectConfig] = None) -> None:
        """Print the report table, then next steps when the run succeeded."""
        style = _RUN_STYLES[report.status]
        console.print()
        if report.steps:
            table = Table(title="Toolchain Steps", show_lines=False, header_style="bold cyan")
            table.add_column("Step", no_wrap=True)
            table.add_column("Status")
            table.add_column("Duration", justify="right")
            table.add_column("Detail", overflow="fold")
            for step in report.steps:
                colour = _STATUS_STYLES[step.status]
                status = step.status.value if step.fatal else f"{step.status.value} (non-fatal)"
                duration = format_duration(step.duration_seconds) if step.is_terminal else "-"
                table.add_row(step.name, f"[{colour}]{status}[/{colour}]", duration, step.error)
            console.print(table)

        lines = [
            f"[{style}]{report.status.value}[/{style}]",
            "",
            f"Project : {report.project_name or '-'}",
            f"Target  : {report.target_path or '-'}",
            f"Files   : {len(report.files_written)}",
        ]
        if report.failed_stage:
            lines.append(f"Stage   : {report.failed_stage}")
        if report.failed_step:
            lines.append(f"Step    : {report.failed_step}")
        if report.error:
            lines.append(f"Error   : [{report.error_kind}] {report.error}")
        console.print(Panel("\n".join(lines), title="[bold]Run Report[/bold]", border_style=style))

        if report.status is RunStatus.SUCCESS and config is not None:
            console.print(Panel(next_steps(config), title="[bold]Next steps[/bold]", border_style="cyan"))


def next_steps(config: ProjectConfig) -> str:
    """Closing instructions for a freshly generated project."""
    lines = [f"cd {config.name}"]
    if config.is_workspace:
        lines += [
            "npm run build        # Build all packages",
            "npm run test         # Run all tests",
            "npm run dev          # Start dev mode",
            "",
            "Packages:",
            f"  {SHARED_PACKAGE}/            # Shared utilities",
            f"  packages/{EXAMPLE_PACKAGE}/  # Example package (rename or delete)",
            "",
            "To add a package, create packages/<name>/src, copy",
            f"packages/{EXAMPLE_PACKAGE}/package.json and run npm install.",
        ]
    else:
        lines += [
            "npm run dev          # Start Wrangler dev server",
            "npm run test         # Run tests",
            "npm run deploy       # Deploy to Cloudflare",
        ]
        if config.include_mcp:
            lines += ["", "MCP server configured: add it to your MCP client config to test locally."]
    if config.skip_verify:
        lines = [lines[0], "npm install", *lines[1:]]
    return "\n".join(lines)
