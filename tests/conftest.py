"""Shared pytest fixtures for the stackseed test suite.

Provides reusable fixtures for:
- Resolved project configurations (worker, worker + MCP, workspace)
- The default template catalog and renderer
- A patched ``run_command`` so no external tool is ever started
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
from unittest.mock import AsyncMock, patch

import pytest

from stackseed.config import ProjectConfig, ProjectKind, ToolchainSettings
from stackseed.scaffolder import TemplateCatalog, TemplateRenderer


# ---------------------------------------------------------------------------
# Configurations
# ---------------------------------------------------------------------------

@pytest.fixture
def worker_config(tmp_path: Path) -> ProjectConfig:
    """Plain Workers project named ``widget-api`` under ``tmp_path``."""
    return ProjectConfig(
        name="widget-api",
        kind=ProjectKind.WORKER,
        target_path=tmp_path / "widget-api",
        quiet=True,
    )


@pytest.fixture
def mcp_config(tmp_path: Path) -> ProjectConfig:
    """Workers project with the MCP server variant."""
    return ProjectConfig(
        name="tool-server",
        kind=ProjectKind.WORKER,
        target_path=tmp_path / "tool-server",
        include_mcp=True,
        quiet=True,
    )


@pytest.fixture
def workspace_config(tmp_path: Path) -> ProjectConfig:
    """Monorepo named ``platform`` under ``tmp_path``."""
    return ProjectConfig(
        name="platform",
        kind=ProjectKind.WORKSPACE,
        target_path=tmp_path / "platform",
        quiet=True,
    )


@pytest.fixture
def settings() -> ToolchainSettings:
    return ToolchainSettings()


# ---------------------------------------------------------------------------
# Scaffolder
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog() -> TemplateCatalog:
    return TemplateCatalog()


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


# ---------------------------------------------------------------------------
# Subprocess mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def which_all() -> Callable[[str], Optional[str]]:
    """``shutil.which`` replacement that finds every tool."""
    return lambda tool: f"/usr/bin/{tool}"


@pytest.fixture
def mock_run_command():
    """Patch the orchestrator's ``run_command`` to succeed for every step.

    Tests override ``side_effect`` to script failures.
    """
    with patch(
        "stackseed.toolchain.orchestrator.run_command",
        new_callable=AsyncMock,
        return_value=(0, "ok", ""),
    ) as mock:
        yield mock
