"""Toolchain step chains for each project kind.

A chain is an ordered list of :class:`ToolchainStep` objects.  Declaration
order is execution order; ``depends_on`` may only name steps declared
earlier, which :func:`validate_chain` checks before anything runs.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from stackseed.config import ProjectConfig, ProjectKind, ToolchainSettings
from stackseed.errors import ChainDefinitionError
from stackseed.scaffolder.templates import EXAMPLE_PACKAGE, SHARED_PACKAGE


# ---------------------------------------------------------------------------
# Package sets
# ---------------------------------------------------------------------------

LINT_AND_HOOK_PACKAGES: tuple[str, ...] = (
    "eslint",
    "@eslint/js",
    "typescript-eslint",
    "eslint-config-prettier",
    "globals",
    "prettier",
    "husky",
    "lint-staged",
    "@commitlint/cli",
    "@commitlint/config-conventional",
)

WORKER_DEPENDENCIES: tuple[str, ...] = ("zod",)

WORKER_DEV_DEPENDENCIES: tuple[str, ...] = (
    "typescript",
    "@types/node",
    "wrangler",
    "@cloudflare/workers-types",
    "vitest",
    "@vitest/coverage-v8",
    "@vitest/ui",
    *LINT_AND_HOOK_PACKAGES,
)

MCP_DEPENDENCIES: tuple[str, ...] = ("@modelcontextprotocol/sdk",)

WORKSPACE_ROOT_DEV_DEPENDENCIES: tuple[str, ...] = (
    "turbo",
    "typescript",
    *LINT_AND_HOOK_PACKAGES,
)

SHARED_DEPENDENCIES: tuple[str, ...] = ("zod",)
SHARED_DEV_DEPENDENCIES: tuple[str, ...] = (
    "typescript",
    "vitest",
    "@vitest/coverage-v8",
    "@types/node",
)

EXAMPLE_DEPENDENCIES: tuple[str, ...] = ("zod",)
EXAMPLE_DEV_DEPENDENCIES: tuple[str, ...] = (
    *SHARED_DEV_DEPENDENCIES,
    "wrangler",
    "@cloudflare/workers-types",
)


# ---------------------------------------------------------------------------
# Step model
# ---------------------------------------------------------------------------


class ToolchainStep(BaseModel):
    """One external command in the verification chain."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique step id within the chain")
    command: tuple[str, ...] = Field(..., min_length=1)
    working_directory: str = Field(default=".", description="Relative to the target root")
    depends_on: tuple[str, ...] = Field(default=())
    fatal: bool = Field(default=True, description="Abort the chain if this step fails")
    description: str = Field(default="")

    @property
    def tool(self) -> str:
        return self.command[0]

    def display_command(self) -> str:
        return " ".join(self.command)


def validate_chain(steps: list[ToolchainStep]) -> None:
    """Reject malformed chains before any step runs.

    Raises:
        ChainDefinitionError: On duplicate names, a dependency that is not
            declared earlier in the chain, or a working directory outside the
            target tree.
    """
    seen: set[str] = set()
    for step in steps:
        if step.name in seen:
            raise ChainDefinitionError(f"Duplicate step name: {step.name}")
        for dep in step.depends_on:
            if dep not in seen:
                raise ChainDefinitionError(
                    f"Step '{step.name}' depends on '{dep}', which is not declared before it"
                )
        workdir = PurePosixPath(step.working_directory)
        if workdir.is_absolute() or ".." in workdir.parts:
            raise ChainDefinitionError(
                f"Step '{step.name}' runs outside the target: {step.working_directory}"
            )
        seen.add(step.name)


# ---------------------------------------------------------------------------
# Chain builders
# ---------------------------------------------------------------------------


def _npm_install(settings: ToolchainSettings, packages: tuple[str, ...], dev: bool = False) -> tuple[str, ...]:
    flags = ("-D",) if dev else ()
    return (settings.npm, "install", *flags, *packages)


def build_worker_steps(config: ProjectConfig, settings: ToolchainSettings) -> list[ToolchainStep]:
    """Chain for a single-package Workers project."""
    install_steps = ["install-dependencies", "install-dev-dependencies"]
    steps = [
        ToolchainStep(
            name="install-dependencies",
            command=_npm_install(settings, WORKER_DEPENDENCIES),
            description="Install runtime dependencies",
        ),
        ToolchainStep(
            name="install-dev-dependencies",
            command=_npm_install(settings, WORKER_DEV_DEPENDENCIES, dev=True),
            depends_on=("install-dependencies",),
            description="Install build, test, lint and hook tooling",
        ),
    ]
    if config.include_mcp:
        steps.append(
            ToolchainStep(
                name="install-mcp-dependencies",
                command=_npm_install(settings, MCP_DEPENDENCIES),
                depends_on=("install-dev-dependencies",),
                description="Install the MCP server SDK",
            )
        )
        install_steps.append("install-mcp-dependencies")

    steps.extend([
        ToolchainStep(
            name="init-git",
            command=(settings.git, "init"),
            description="Initialize the git repository",
        ),
        ToolchainStep(
            name="install-hooks",
            command=(settings.npx, "husky"),
            depends_on=("install-dev-dependencies", "init-git"),
            fatal=False,
            description="Wire .husky hooks into git",
        ),
        ToolchainStep(
            name="build",
            command=(settings.npm, "run", "build"),
            depends_on=tuple(install_steps),
            description="Type-check the project",
        ),
        ToolchainStep(
            name="test",
            command=(settings.npm, "run", "test"),
            depends_on=("build",),
            description="Run the vitest suite",
        ),
    ])
    return steps


def build_workspace_steps(config: ProjectConfig, settings: ToolchainSettings) -> list[ToolchainStep]:
    """Chain for an npm workspaces monorepo."""
    shared_dir = SHARED_PACKAGE
    example_dir = f"packages/{EXAMPLE_PACKAGE}"
    return [
        ToolchainStep(
            name="install-root-dependencies",
            command=_npm_install(settings, WORKSPACE_ROOT_DEV_DEPENDENCIES, dev=True),
            description="Install turbo and the shared lint/hook tooling",
        ),
        ToolchainStep(
            name="install-shared-dependencies",
            command=_npm_install(settings, SHARED_DEPENDENCIES),
            working_directory=shared_dir,
            depends_on=("install-root-dependencies",),
        ),
        ToolchainStep(
            name="install-shared-dev-dependencies",
            command=_npm_install(settings, SHARED_DEV_DEPENDENCIES, dev=True),
            working_directory=shared_dir,
            depends_on=("install-shared-dependencies",),
        ),
        ToolchainStep(
            name="install-example-dependencies",
            command=_npm_install(settings, EXAMPLE_DEPENDENCIES),
            working_directory=example_dir,
            depends_on=("install-root-dependencies",),
        ),
        ToolchainStep(
            name="install-example-dev-dependencies",
            command=_npm_install(settings, EXAMPLE_DEV_DEPENDENCIES, dev=True),
            working_directory=example_dir,
            depends_on=("install-example-dependencies",),
        ),
        ToolchainStep(
            name="link-workspaces",
            command=(settings.npm, "install"),
            depends_on=("install-shared-dev-dependencies", "install-example-dev-dependencies"),
            description="Link workspace packages at the root",
        ),
        ToolchainStep(
            name="init-git",
            command=(settings.git, "init"),
        ),
        ToolchainStep(
            name="install-hooks",
            command=(settings.npx, "husky"),
            depends_on=("install-root-dependencies", "init-git"),
            fatal=False,
        ),
        ToolchainStep(
            name="build",
            command=(settings.npm, "run", "build"),
            depends_on=(
                "install-shared-dependencies",
                "install-shared-dev-dependencies",
                "install-example-dependencies",
                "install-example-dev-dependencies",
                "link-workspaces",
            ),
            description="turbo build across all packages",
        ),
        ToolchainStep(
            name="test",
            command=(settings.npm, "run", "test"),
            depends_on=("build",),
            description="turbo test across all packages",
        ),
    ]


_BUILDERS = {
    ProjectKind.WORKER: build_worker_steps,
    ProjectKind.WORKSPACE: build_workspace_steps,
}


def build_steps(config: ProjectConfig, settings: ToolchainSettings | None = None) -> list[ToolchainStep]:
    """Return the validated chain for *config*; empty when verification is skipped."""
    if config.skip_verify:
        return []
    settings = settings or ToolchainSettings()
    steps = _BUILDERS[config.kind](config, settings)
    validate_chain(steps)
    return steps
