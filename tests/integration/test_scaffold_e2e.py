"""Integration tests for the resolve-render-materialize-verify pipeline.

These tests drive ``run_cli`` end-to-end against ``tmp_path`` and inspect the
generated tree and the JSON Run Report.  npm, npx and git are never started:
``run_command`` is patched to succeed and every tool is reported as present.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from stackseed.pipeline import EXIT_ABORTED, EXIT_INVALID_INPUT, EXIT_SUCCESS, run_cli
from stackseed.toolchain import RunReport, RunStatus, StepStatus
from stackseed.utils import is_executable


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def toolchain(mock_run_command: AsyncMock):
    """Every tool on PATH, every command succeeds."""
    with patch(
        "stackseed.toolchain.orchestrator.shutil.which",
        side_effect=lambda tool: f"/usr/bin/{tool}",
    ):
        yield mock_run_command


@pytest.fixture
def materialize_spy():
    """Records whether the materializer was ever asked to write."""
    with patch(
        "stackseed.pipeline.FilesystemMaterializer.materialize", new_callable=AsyncMock
    ) as spy:
        yield spy


def _generate(cwd: Path, *argv: str) -> tuple[int, RunReport]:
    code = run_cli([*argv, "--quiet", "--report", "report.json"], cwd=cwd)
    return code, RunReport.load(cwd / "report.json")


def _tree(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


# ---------------------------------------------------------------------------
# Single-package project
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestGenerateWorker:
    def test_widget_api(self, tmp_path: Path, toolchain: AsyncMock):
        code, report = _generate(tmp_path, "generate", "widget-api")
        root = tmp_path / "widget-api"

        assert code == EXIT_SUCCESS
        assert report.status is RunStatus.SUCCESS
        assert all(s.status is StepStatus.SUCCEEDED for s in report.steps)

        manifest = json.loads((root / "package.json").read_text(encoding="utf-8"))
        assert manifest["name"] == "widget-api"

        for hook in ("pre-commit", "commit-msg", "pre-push"):
            assert is_executable(root / ".husky" / hook), hook

        for rel in ("tsconfig.json", "vitest.config.ts", "eslint.config.js", "wrangler.toml"):
            assert (root / rel).is_file(), rel
        assert (root / "src" / "tools").is_dir()
        assert (root / "src" / "utils").is_dir()

        assert "install-mcp-dependencies" not in report.step_statuses()
        for rel, body in _tree(root).items():
            assert b"modelcontextprotocol" not in body, rel

        assert sorted(report.files_written) == sorted(_tree(root))

    def test_with_mcp(self, tmp_path: Path, toolchain: AsyncMock):
        code, report = _generate(tmp_path, "generate", "tool-server", "--mcp")
        root = tmp_path / "tool-server"

        assert code == EXIT_SUCCESS
        assert report.step_statuses()["install-mcp-dependencies"] is StepStatus.SUCCEEDED
        index = (root / "src" / "index.ts").read_text(encoding="utf-8")
        assert "@modelcontextprotocol/sdk" in index
        assert "'tool-server'" in index
        assert "## MCP Server" in (root / "CLAUDE.md").read_text(encoding="utf-8")

    def test_output_is_reproducible(self, tmp_path: Path, toolchain: AsyncMock):
        (tmp_path / "one").mkdir()
        (tmp_path / "two").mkdir()
        assert run_cli(["generate", "widget-api", "-q", "--skip-verify"], cwd=tmp_path / "one") == 0
        assert run_cli(["generate", "widget-api", "-q", "--skip-verify"], cwd=tmp_path / "two") == 0
        assert _tree(tmp_path / "one" / "widget-api") == _tree(tmp_path / "two" / "widget-api")


# ---------------------------------------------------------------------------
# Rejected invocations
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestRejectedInvocations:
    def test_bad_name(self, tmp_path: Path, materialize_spy: AsyncMock):
        code = run_cli(["generate", "bad name!", "-q"], cwd=tmp_path)

        assert code == EXIT_INVALID_INPUT
        assert list(tmp_path.iterdir()) == []
        materialize_spy.assert_not_called()

    def test_target_is_existing_file(self, tmp_path: Path, materialize_spy: AsyncMock):
        existing = tmp_path / "widget-api"
        existing.write_text("keep me\n", encoding="utf-8")

        code = run_cli(["generate", "widget-api", "-q"], cwd=tmp_path)

        assert code == EXIT_INVALID_INPUT
        assert existing.read_text(encoding="utf-8") == "keep me\n"
        assert [p.name for p in tmp_path.iterdir()] == ["widget-api"]
        materialize_spy.assert_not_called()


# ---------------------------------------------------------------------------
# Multi-package workspace
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestGenerateWorkspace:
    def test_platform(self, tmp_path: Path, toolchain: AsyncMock):
        code, report = _generate(tmp_path, "generate-workspace", "platform")
        root = tmp_path.resolve() / "platform"

        assert code == EXIT_SUCCESS
        assert report.status is RunStatus.SUCCESS

        root_manifest = json.loads((root / "package.json").read_text(encoding="utf-8"))
        shared = json.loads((root / "shared" / "package.json").read_text(encoding="utf-8"))
        example = json.loads((root / "packages" / "example" / "package.json").read_text(encoding="utf-8"))
        assert root_manifest["name"] == "platform"
        assert shared["name"] == "@platform/shared"
        assert example["name"] == "@platform/example"
        assert (root / "turbo.json").is_file()

        order = [s.name for s in report.steps]
        assert order.index("build") > order.index("install-shared-dev-dependencies")
        assert order.index("build") > order.index("install-example-dev-dependencies")
        assert report.step_statuses()["build"] is StepStatus.SUCCEEDED

        cwds = [call.kwargs["cwd"] for call in toolchain.call_args_list]
        assert root / "shared" in cwds
        assert root / "packages" / "example" in cwds

    def test_failed_subpackage_install_stops_build(self, tmp_path: Path, toolchain: AsyncMock):
        def _side_effect(cmd, cwd=None, timeout=None):
            if Path(cwd).name == "example":
                return (1, "", "npm ERR! 404")
            return (0, "", "")

        toolchain.side_effect = _side_effect
        code, report = _generate(tmp_path, "generate-workspace", "platform")

        assert code == EXIT_ABORTED
        assert report.failed_step == "install-example-dependencies"
        statuses = report.step_statuses()
        assert statuses["build"] is StepStatus.NOT_RUN
        assert statuses["test"] is StepStatus.NOT_RUN
        assert (tmp_path / "platform" / "shared" / "package.json").is_file()
