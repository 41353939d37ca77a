"""stackseed configuration.

Typed configuration for one generation run.  :class:`ConfigResolver` turns raw
invocation arguments into an immutable :class:`ProjectConfig` (or raises
:class:`~stackseed.errors.ConfigurationError`); :class:`ToolchainSettings`
holds the tunables for the external toolchain and can be read from the
environment.
"""

from __future__ import annotations

import argparse
import os
import re
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigReason, ConfigurationError


# npm refuses package names longer than this.
MAX_NAME_LENGTH = 214

_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


class ProjectKind(str, Enum):
    """Which kind of target a run generates."""

    WORKER = "worker"
    WORKSPACE = "workspace"


COMMANDS: dict[str, ProjectKind] = {
    "generate": ProjectKind.WORKER,
    "generate-workspace": ProjectKind.WORKSPACE,
}

# Mode flags each command accepts; anything else is an UnknownOption.
COMMAND_FLAGS: dict[ProjectKind, tuple[str, ...]] = {
    ProjectKind.WORKER: ("include_mcp",),
    ProjectKind.WORKSPACE: (),
}


# ---------------------------------------------------------------------------
# Toolchain settings
# ---------------------------------------------------------------------------


class ToolchainSettings(BaseModel):
    """Executables and limits used by the toolchain orchestrator."""

    npm: str = Field(default="npm")
    npx: str = Field(default="npx")
    git: str = Field(default="git")
    step_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-step wall-clock budget in seconds; None waits forever",
    )

    @classmethod
    def from_env(cls) -> "ToolchainSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            STACKSEED_NPM, STACKSEED_NPX, STACKSEED_GIT, STACKSEED_STEP_TIMEOUT.
        """
        kwargs: dict[str, object] = {}
        if os.environ.get("STACKSEED_NPM"):
            kwargs["npm"] = os.environ["STACKSEED_NPM"]
        if os.environ.get("STACKSEED_NPX"):
            kwargs["npx"] = os.environ["STACKSEED_NPX"]
        if os.environ.get("STACKSEED_GIT"):
            kwargs["git"] = os.environ["STACKSEED_GIT"]
        if os.environ.get("STACKSEED_STEP_TIMEOUT"):
            kwargs["step_timeout"] = float(os.environ["STACKSEED_STEP_TIMEOUT"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """The resolved, read-only description of one generation run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Target name, also the npm package name")
    kind: ProjectKind = Field(default=ProjectKind.WORKER)
    target_path: Path = Field(..., description="Absolute path of the directory to create")
    include_mcp: bool = Field(default=False, description="Render the MCP server variant")
    skip_verify: bool = Field(default=False, description="Materialize only, run no toolchain steps")
    report_path: Optional[Path] = Field(default=None, description="Where to write the JSON Run Report")
    quiet: bool = Field(default=False)

    @property
    def is_workspace(self) -> bool:
        return self.kind is ProjectKind.WORKSPACE

    def flags(self) -> dict[str, bool]:
        """Mode flags as a plain mapping, used for template gating."""
        return {
            "include_mcp": self.include_mcp,
            "is_workspace": self.is_workspace,
        }


def validate_name(name: str) -> str:
    """Return *name* if it is safe as both a directory and an npm package name.

    Raises:
        ConfigurationError: With reason ``InvalidName`` otherwise.
    """
    if not name:
        raise ConfigurationError(ConfigReason.INVALID_NAME, "Project name must not be empty")
    if name in (".", ".."):
        raise ConfigurationError(ConfigReason.INVALID_NAME, f"Invalid project name: {name!r}")
    if len(name) > MAX_NAME_LENGTH:
        raise ConfigurationError(
            ConfigReason.INVALID_NAME,
            f"Project name is longer than {MAX_NAME_LENGTH} characters",
        )
    if not _NAME_PATTERN.fullmatch(name):
        raise ConfigurationError(
            ConfigReason.INVALID_NAME,
            f"Invalid project name {name!r}: use lower-case letters, digits, "
            f"'-', '_' or '.', starting with a letter or digit",
        )
    return name


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class _RaisingArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing usage and exiting."""

    def error(self, message: str):  # type: ignore[override]
        raise ConfigurationError(ConfigReason.MISSING_ARGUMENT, message)


def _build_parser(command: str, kind: ProjectKind) -> argparse.ArgumentParser:
    parser = _RaisingArgumentParser(
        prog=f"stackseed {command}", add_help=False, allow_abbrev=False
    )
    parser.add_argument("name", help="Name of the project to create")
    if "include_mcp" in COMMAND_FLAGS[kind]:
        parser.add_argument(
            "--mcp",
            dest="include_mcp",
            action="store_true",
            help="Include MCP server boilerplate (Model Context Protocol)",
        )
    parser.add_argument(
        "--parent",
        default=None,
        help="Directory in which the project is created (default: current directory)",
    )
    parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="Write the project but do not run install/build/test",
    )
    parser.add_argument("--report", default=None, help="Write the run report as JSON to this path")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print the final report")
    return parser


class ConfigResolver:
    """Parses invocation arguments into a :class:`ProjectConfig`.

    The only filesystem access is the existence check on the target path.
    """

    def __init__(self, cwd: str | Path | None = None) -> None:
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()

    def resolve(self, argv: Sequence[str]) -> ProjectConfig:
        """Resolve ``[command, name, *flags]`` into a configuration.

        Raises:
            ConfigurationError: On an unknown command or flag, an illegal
                name, or a target path that already exists.
        """
        if not argv:
            raise ConfigurationError(
                ConfigReason.MISSING_ARGUMENT,
                f"Missing command (expected one of: {', '.join(COMMANDS)})",
            )

        command, rest = argv[0], list(argv[1:])
        kind = COMMANDS.get(command)
        if kind is None:
            raise ConfigurationError(ConfigReason.UNKNOWN_OPTION, f"Unknown command: {command}")

        parser = _build_parser(command, kind)
        args, unknown = parser.parse_known_args(rest)
        if unknown:
            raise ConfigurationError(
                ConfigReason.UNKNOWN_OPTION,
                f"Unknown option(s) for '{command}': {' '.join(unknown)}",
            )

        name = validate_name(args.name)
        parent = Path(args.parent) if args.parent else self.cwd
        if not parent.is_absolute():
            parent = self.cwd / parent
        target = parent.resolve() / name

        # Directory, file or dangling symlink: never merge into or overwrite.
        if target.exists() or target.is_symlink():
            raise ConfigurationError(
                ConfigReason.TARGET_EXISTS, f"Target already exists: {target}"
            )

        report_path = None
        if args.report:
            report_path = Path(args.report)
            if not report_path.is_absolute():
                report_path = self.cwd / report_path

        return ProjectConfig(
            name=name,
            kind=kind,
            target_path=target,
            include_mcp=bool(getattr(args, "include_mcp", False)),
            skip_verify=args.skip_verify,
            report_path=report_path,
            quiet=args.quiet,
        )
