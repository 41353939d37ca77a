"""Runs a toolchain step chain against a materialized tree.

Steps run one at a time in declaration order.  A fatal step that fails stops
the chain; the steps after it are left ``Pending`` for the verification
runner to report as ``NotRun``.  A non-fatal step that fails is recorded and
the chain carries on.
"""

from __future__ import annotations

import shutil
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

from stackseed.config import ToolchainSettings
from stackseed.errors import StepFailed, StepTimedOut, ToolchainError, ToolUnavailable
from stackseed.utils import CommandTimeoutError, console, format_duration, run_command, tail

from .results import ChainResult, ChainStatus, StepResult, StepStatus
from .steps import ToolchainStep, validate_chain

OUTPUT_TAIL_LINES = 20


class ToolchainOrchestrator:
    """Executes :class:`ToolchainStep` chains and records per-step status.

    Args:
        settings: Executables and the optional per-step timeout.
        quiet: Suppress per-step progress lines.
        which: Lookup used to check a step's executable before starting it
            (defaults to :func:`shutil.which`).
    """

    def __init__(
        self,
        settings: Optional[ToolchainSettings] = None,
        quiet: bool = False,
        which: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self.settings = settings or ToolchainSettings()
        self.quiet = quiet
        self._which = which or shutil.which

    async def run(self, steps: Sequence[ToolchainStep], root: Path) -> ChainResult:
        """Run *steps* in order inside *root* and return the chain state."""
        validate_chain(list(steps))
        chain = ChainResult(
            steps=[
                StepResult(
                    name=s.name,
                    command=list(s.command),
                    working_directory=s.working_directory,
                    fatal=s.fatal,
                    depends_on=list(s.depends_on),
                )
                for s in steps
            ]
        )
        if not steps:
            chain.status = ChainStatus.COMPLETED
            return chain

        chain.status = ChainStatus.IN_PROGRESS
        for step, result in zip(steps, chain.steps):
            blocker = self._unsatisfied_dependency(step, chain)
            if blocker is not None:
                result.status = StepStatus.NOT_RUN
                result.error_kind = "DependencyNotSatisfied"
                result.error = f"Dependency '{blocker}' did not succeed"
                if step.fatal:
                    chain.status = ChainStatus.ABORTED
                    chain.aborted_at = step.name
                    return chain
                continue

            await self._run_step(step, result, root)

            if result.status is StepStatus.FAILED and step.fatal:
                chain.status = ChainStatus.ABORTED
                chain.aborted_at = step.name
                return chain

        chain.status = ChainStatus.COMPLETED
        return chain

    # -- Internal helpers --------------------------------------------------

    @staticmethod
    def _unsatisfied_dependency(step: ToolchainStep, chain: ChainResult) -> Optional[str]:
        for dep in step.depends_on:
            dep_result = chain.step(dep)
            if dep_result.status is StepStatus.SUCCEEDED:
                continue
            if not dep_result.fatal and dep_result.status is not StepStatus.PENDING:
                continue
            return dep
        return None

    async def _run_step(self, step: ToolchainStep, result: StepResult, root: Path) -> None:
        result.status = StepStatus.RUNNING
        if not self.quiet:
            label = f"{step.name}: {step.description}" if step.description else step.name
            console.print(f"  [cyan]>[/cyan] {label} [dim]({step.display_command()})[/dim]")

        start = time.monotonic()
        try:
            await self._execute(step, result, root)
        except ToolchainError as exc:
            result.status = StepStatus.FAILED
            result.error_kind = exc.kind
            result.error = exc.message
        else:
            result.status = StepStatus.SUCCEEDED
        finally:
            result.duration_seconds = time.monotonic() - start

        if self.quiet:
            return
        elapsed = format_duration(result.duration_seconds)
        if result.status is StepStatus.SUCCEEDED:
            console.print(f"    [green]ok[/green] {step.name} ({elapsed})")
        elif step.fatal:
            console.print(f"    [red]failed[/red] {step.name} ({elapsed}): {result.error}")
        else:
            console.print(f"    [yellow]failed (non-fatal)[/yellow] {step.name}: {result.error}")

    async def _execute(self, step: ToolchainStep, result: StepResult, root: Path) -> None:
        """Run one step; raise a :class:`ToolchainError` subclass on failure."""
        if self._which(step.tool) is None:
            raise ToolUnavailable(step.name, step.tool)

        cwd = root / step.working_directory
        try:
            rc, stdout, stderr = await run_command(
                list(step.command), cwd=cwd, timeout=self.settings.step_timeout
            )
        except CommandTimeoutError as exc:
            raise StepTimedOut(step.name, exc.timeout) from exc
        except OSError:
            raise ToolUnavailable(step.name, step.tool) from None

        result.returncode = rc
        result.output_tail = tail("\n".join(p for p in (stdout, stderr) if p), OUTPUT_TAIL_LINES)
        if rc != 0:
            last_line = tail(stderr or stdout, 1)
            raise StepFailed(step.name, rc, last_line)
