"""stackseed pipeline.

Runs one generation job through its stages, strictly in sequence:

RESOLVE     -- Parse arguments into an immutable ProjectConfig.
MATERIALIZE -- Render the template catalog and write the target tree.
VERIFY      -- Install, initialize git, install hooks, build and test.

Usage::

    stackseed generate widget-api
    stackseed generate widget-api --mcp --report run.json
    stackseed generate-workspace platform --parent ~/code
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from stackseed import __version__
from stackseed.config import ConfigResolver, ProjectConfig, ToolchainSettings
from stackseed.errors import ConfigurationError, GenerationError, InternalError
from stackseed.scaffolder import (
    FilesystemMaterializer,
    MaterializedTree,
    TemplateCatalog,
    TemplateRenderer,
)
from stackseed.toolchain import (
    RunReport,
    RunStatus,
    ToolchainOrchestrator,
    VerificationRunner,
    build_steps,
)
from stackseed.toolchain.steps import ToolchainStep
from stackseed.utils import (
    console,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)

# ---------------------------------------------------------------------------
# Exit status
# ---------------------------------------------------------------------------

EXIT_SUCCESS = 0
EXIT_ABORTED = 1
EXIT_INVALID_INPUT = 2
EXIT_PARTIAL_FAILURE = 3
EXIT_INTERNAL_ERROR = 70


def exit_code_for(report: RunReport) -> int:
    """Map a Run Report to the process exit status."""
    if report.status is RunStatus.SUCCESS:
        return EXIT_SUCCESS
    if report.status is RunStatus.PARTIAL_FAILURE:
        return EXIT_PARTIAL_FAILURE
    if report.failed_stage == "configuration":
        return EXIT_INVALID_INPUT
    if report.failed_stage == "internal":
        return EXIT_INTERNAL_ERROR
    return EXIT_ABORTED


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Drives one resolved configuration through materialization and verification.

    :class:`~stackseed.errors.ConfigurationError` and
    :class:`~stackseed.errors.GenerationError` end the run with an
    ``Aborted`` report.  :class:`~stackseed.errors.InternalError` is never
    turned into a report here; it propagates to the caller.
    """

    def __init__(
        self,
        config: ProjectConfig,
        settings: Optional[ToolchainSettings] = None,
        catalog: Optional[TemplateCatalog] = None,
        renderer: Optional[TemplateRenderer] = None,
        orchestrator: Optional[ToolchainOrchestrator] = None,
        verifier: Optional[VerificationRunner] = None,
    ) -> None:
        self.config = config
        self.settings = settings or ToolchainSettings()
        self.catalog = catalog or TemplateCatalog()
        self.renderer = renderer or TemplateRenderer()
        self.orchestrator = orchestrator or ToolchainOrchestrator(self.settings, quiet=config.quiet)
        self.verifier = verifier or VerificationRunner()
        self.steps: list[ToolchainStep] = []
        self.tree: Optional[MaterializedTree] = None

    async def run(self) -> RunReport:
        started_at = datetime.now(timezone.utc).isoformat()
        config = self.config

        # Both of these only raise InternalError and touch nothing on disk.
        self.steps = build_steps(config, self.settings)
        files = self.renderer.render_catalog(self.catalog, config)

        self._announce("generation", str(config.target_path))
        try:
            tree = await FilesystemMaterializer(config.target_path).materialize(
                files, self.catalog.directories(config.kind)
            )
        except (ConfigurationError, GenerationError) as exc:
            return self.verifier.from_error(exc, config, self.steps, started_at)

        self.tree = tree
        if not config.quiet:
            print_success(f"Wrote {len(tree.files)} files to {tree.root}")

        if self.steps:
            self._announce("toolchain", f"{len(self.steps)} steps")
        elif not config.quiet:
            print_warning("Verification skipped (--skip-verify)")
        chain = await self.orchestrator.run(self.steps, tree.root)

        return self.verifier.from_chain(config, chain, tree, started_at)

    def _announce(self, stage: str, detail: str) -> None:
        if not self.config.quiet:
            print_stage_header(stage, detail)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _finish(report: RunReport, config: Optional[ProjectConfig], verifier: VerificationRunner) -> int:
    verifier.render(report, config)
    code = exit_code_for(report)
    if config is not None and config.report_path is not None:
        try:
            report.save(config.report_path)
        except OSError as exc:
            print_error(f"Could not write run report to {config.report_path}: {exc}")
            return code if code != EXIT_SUCCESS else EXIT_ABORTED
        if not config.quiet:
            console.print(f"[dim]Run report written to {config.report_path}[/dim]")
    return code


def run_cli(argv: Sequence[str], cwd: Optional[Path] = None) -> int:
    """Run one invocation and return its exit status."""
    verifier = VerificationRunner()

    try:
        settings = ToolchainSettings.from_env()
    except ValueError as exc:
        print_error(f"Invalid STACKSEED_* environment setting: {exc}")
        return EXIT_INVALID_INPUT

    try:
        config = ConfigResolver(cwd).resolve(argv)
    except ConfigurationError as exc:
        print_error(f"[{exc.kind}] {exc.message}")
        return _finish(verifier.from_error(exc), None, verifier)

    if not config.quiet:
        print_stage_header("configuration", config.name)
        print_summary_table(
            {
                "Kind": config.kind.value,
                "Target": str(config.target_path),
                "MCP server": "yes" if config.include_mcp else "no",
                "Verify": "no" if config.skip_verify else "yes",
            },
            title="Configuration",
        )

    pipeline = Pipeline(config, settings=settings, verifier=verifier)
    try:
        report = asyncio.run(pipeline.run())
    except InternalError as exc:
        console.print_exception()
        print_error(f"Internal error [{exc.kind}]: {exc.message}")
        report = verifier.from_error(exc, config, pipeline.steps, tree=pipeline.tree)

    return _finish(report, config, verifier)


def main() -> None:
    """CLI entry point for ``stackseed``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="stackseed",
        description="stackseed -- generate TypeScript projects with lint, hooks and tests wired up",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Commands:\n"
            "  generate <name> [--mcp]      Cloudflare Workers project\n"
            "  generate-workspace <name>    npm workspaces + Turborepo monorepo\n"
            "\n"
            "Common options:\n"
            "  --parent DIR     create the project inside DIR (default: .)\n"
            "  --skip-verify    write files only; do not install, build or test\n"
            "  --report PATH    write the run report as JSON\n"
            "  --quiet, -q      only print the final report\n"
            "\n"
            "Exit status: 0 success, 1 aborted, 2 invalid input, 3 partial failure, 70 internal error\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs="?", help="generate | generate-workspace")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Command arguments")

    args = parser.parse_args()
    argv = [args.command, *args.args] if args.command else []
    sys.exit(run_cli(argv))


if __name__ == "__main__":
    main()
