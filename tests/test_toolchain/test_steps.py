"""Unit tests for toolchain chain definitions (stackseed.toolchain.steps)."""

from __future__ import annotations

import pytest

from stackseed.config import ProjectConfig, ToolchainSettings
from stackseed.errors import ChainDefinitionError
from stackseed.toolchain import ToolchainStep, build_steps, validate_chain
from stackseed.toolchain.steps import MCP_DEPENDENCIES


def _names(steps: list[ToolchainStep]) -> list[str]:
    return [s.name for s in steps]


class TestWorkerChain:
    @pytest.mark.unit
    def test_canonical_order(self, worker_config: ProjectConfig):
        steps = build_steps(worker_config)
        assert _names(steps) == [
            "install-dependencies",
            "install-dev-dependencies",
            "init-git",
            "install-hooks",
            "build",
            "test",
        ]

    @pytest.mark.unit
    def test_commands(self, worker_config: ProjectConfig):
        steps = {s.name: s for s in build_steps(worker_config)}
        assert steps["install-dependencies"].command == ("npm", "install", "zod")
        assert steps["install-dev-dependencies"].command[:3] == ("npm", "install", "-D")
        assert "wrangler" in steps["install-dev-dependencies"].command
        assert "husky" in steps["install-dev-dependencies"].command
        assert steps["init-git"].command == ("git", "init")
        assert steps["install-hooks"].command == ("npx", "husky")
        assert steps["build"].command == ("npm", "run", "build")
        assert steps["test"].command == ("npm", "run", "test")
        assert all(s.working_directory == "." for s in steps.values())

    @pytest.mark.unit
    def test_only_hooks_are_non_fatal(self, worker_config: ProjectConfig):
        steps = build_steps(worker_config)
        assert [s.name for s in steps if not s.fatal] == ["install-hooks"]

    @pytest.mark.unit
    def test_mcp_adds_sdk_install(self, mcp_config: ProjectConfig):
        steps = {s.name: s for s in build_steps(mcp_config)}
        mcp = steps["install-mcp-dependencies"]
        assert mcp.command == ("npm", "install", *MCP_DEPENDENCIES)
        assert "install-mcp-dependencies" in steps["build"].depends_on
        assert _names(list(steps.values())).index("install-mcp-dependencies") == 2

    @pytest.mark.unit
    def test_settings_override_executables(self, worker_config: ProjectConfig):
        settings = ToolchainSettings(npm="/opt/npm", npx="/opt/npx", git="/opt/git")
        steps = {s.name: s for s in build_steps(worker_config, settings)}
        assert steps["install-dependencies"].tool == "/opt/npm"
        assert steps["install-hooks"].tool == "/opt/npx"
        assert steps["init-git"].tool == "/opt/git"

    @pytest.mark.unit
    def test_skip_verify_declares_no_steps(self, worker_config: ProjectConfig):
        config = worker_config.model_copy(update={"skip_verify": True})
        assert build_steps(config) == []


class TestWorkspaceChain:
    @pytest.mark.unit
    def test_order_and_directories(self, workspace_config: ProjectConfig):
        steps = build_steps(workspace_config)
        assert _names(steps) == [
            "install-root-dependencies",
            "install-shared-dependencies",
            "install-shared-dev-dependencies",
            "install-example-dependencies",
            "install-example-dev-dependencies",
            "link-workspaces",
            "init-git",
            "install-hooks",
            "build",
            "test",
        ]
        dirs = {s.name: s.working_directory for s in steps}
        assert dirs["install-shared-dependencies"] == "shared"
        assert dirs["install-example-dev-dependencies"] == "packages/example"
        assert dirs["build"] == "."

    @pytest.mark.unit
    def test_build_depends_on_both_subpackages(self, workspace_config: ProjectConfig):
        build = next(s for s in build_steps(workspace_config) if s.name == "build")
        assert {
            "install-shared-dependencies",
            "install-shared-dev-dependencies",
            "install-example-dependencies",
            "install-example-dev-dependencies",
        } <= set(build.depends_on)


class TestValidateChain:
    @pytest.mark.unit
    def test_duplicate_names(self):
        steps = [ToolchainStep(name="a", command=("true",)), ToolchainStep(name="a", command=("true",))]
        with pytest.raises(ChainDefinitionError, match="Duplicate"):
            validate_chain(steps)

    @pytest.mark.unit
    def test_forward_dependency(self):
        steps = [
            ToolchainStep(name="a", command=("true",), depends_on=("b",)),
            ToolchainStep(name="b", command=("true",)),
        ]
        with pytest.raises(ChainDefinitionError, match="not declared before"):
            validate_chain(steps)

    @pytest.mark.unit
    @pytest.mark.parametrize("workdir", ["/tmp", "../outside", "a/../../b"])
    def test_working_directory_outside_tree(self, workdir: str):
        steps = [ToolchainStep(name="a", command=("true",), working_directory=workdir)]
        with pytest.raises(ChainDefinitionError, match="outside the target"):
            validate_chain(steps)

    @pytest.mark.unit
    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            ToolchainStep(name="a", command=())

    @pytest.mark.unit
    def test_chain_definition_error_is_internal(self):
        assert ChainDefinitionError("x").stage == "internal"
