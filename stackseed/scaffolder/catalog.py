"""Static registry of the templates stackseed can render.

Each :class:`Template` pairs a Jinja2 source file under ``templates/`` with a
destination pattern and an ``applies_when`` predicate over the resolved
:class:`~stackseed.config.ProjectConfig`.  Variants that target the same
destination (such as the two ``src/index.ts`` entry points) are selected by
mutually exclusive predicates, never by splicing strings at render time.

Declaration order is the write order used by the materializer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from stackseed.config import ProjectConfig, ProjectKind

Predicate = Callable[[ProjectConfig], bool]


def always(config: ProjectConfig) -> bool:
    return True


def when(flag: str) -> Predicate:
    """Predicate that holds when mode flag *flag* is set."""

    def _predicate(config: ProjectConfig) -> bool:
        return config.flags()[flag]

    _predicate.__name__ = f"when_{flag}"
    return _predicate


def unless(flag: str) -> Predicate:
    """Predicate that holds when mode flag *flag* is unset."""

    def _predicate(config: ProjectConfig) -> bool:
        return not config.flags()[flag]

    _predicate.__name__ = f"unless_{flag}"
    return _predicate


@dataclass(frozen=True)
class Template:
    """A named unit of generatable content."""

    id: str
    source: str
    destination: str
    applies_when: Predicate = always
    executable: bool = False


# ---------------------------------------------------------------------------
# Shared entries
# ---------------------------------------------------------------------------

_LINT_AND_FORMAT: tuple[Template, ...] = (
    Template("common.eslint_config", "common/eslint.config.js.j2", "eslint.config.js"),
    Template("common.prettierrc", "common/prettierrc.j2", ".prettierrc"),
    Template("common.prettierignore", "common/prettierignore.j2", ".prettierignore"),
    Template("common.commitlint", "common/commitlint.config.js.j2", "commitlint.config.js"),
)

_REPO_FILES: tuple[Template, ...] = (
    Template("common.gitignore", "common/gitignore.j2", ".gitignore"),
    Template("common.editorconfig", "common/editorconfig.j2", ".editorconfig"),
)

_HOOKS: tuple[Template, ...] = (
    Template("common.hook_pre_commit", "common/husky/pre-commit.j2", ".husky/pre-commit", executable=True),
    Template("common.hook_commit_msg", "common/husky/commit-msg.j2", ".husky/commit-msg", executable=True),
    Template("common.hook_pre_push", "common/husky/pre-push.j2", ".husky/pre-push", executable=True),
)

_EDITOR_SETTINGS: tuple[Template, ...] = (
    Template("common.vscode_settings", "common/vscode/settings.json.j2", ".vscode/settings.json"),
)


# ---------------------------------------------------------------------------
# Single-package Workers project
# ---------------------------------------------------------------------------

WORKER_TEMPLATES: tuple[Template, ...] = (
    Template("worker.package_json", "worker/package.json.j2", "package.json"),
    Template("worker.tsconfig", "worker/tsconfig.json.j2", "tsconfig.json"),
    Template("worker.vitest_config", "worker/vitest.config.ts.j2", "vitest.config.ts"),
    *_LINT_AND_FORMAT,
    Template("worker.wrangler", "worker/wrangler.toml.j2", "wrangler.toml"),
    *_REPO_FILES,
    Template("worker.types", "worker/src/types.ts.j2", "src/types.ts"),
    Template("worker.validation", "worker/src/validation.ts.j2", "src/validation.ts"),
    Template("worker.index_mcp", "worker/src/index.mcp.ts.j2", "src/index.ts", when("include_mcp")),
    Template("worker.index_worker", "worker/src/index.worker.ts.j2", "src/index.ts", unless("include_mcp")),
    Template("worker.validation_test", "worker/src/validation.test.ts.j2", "src/validation.test.ts"),
    *_HOOKS,
    *_EDITOR_SETTINGS,
    Template("worker.vscode_extensions", "worker/vscode/extensions.json.j2", ".vscode/extensions.json"),
    Template("worker.claude_settings", "common/claude/settings.json.j2", ".claude/settings.json"),
    Template("worker.claude_md", "worker/CLAUDE.md.j2", "CLAUDE.md"),
)

WORKER_DIRECTORIES: tuple[str, ...] = ("src/tools", "src/utils")


# ---------------------------------------------------------------------------
# Multi-package workspace
# ---------------------------------------------------------------------------

WORKSPACE_TEMPLATES: tuple[Template, ...] = (
    Template("workspace.package_json", "workspace/package.json.j2", "package.json"),
    Template("workspace.turbo", "workspace/turbo.json.j2", "turbo.json"),
    *_LINT_AND_FORMAT,
    *_REPO_FILES,
    # Shared utilities subpackage
    Template("shared.package_json", "workspace/shared/package.json.j2", "{{ shared_package }}/package.json"),
    Template("shared.tsconfig", "workspace/shared/tsconfig.json.j2", "{{ shared_package }}/tsconfig.json"),
    Template("shared.vitest_config", "workspace/vitest.config.ts.j2", "{{ shared_package }}/vitest.config.ts"),
    Template("shared.index", "workspace/shared/src/index.ts.j2", "{{ shared_package }}/src/index.ts"),
    Template("shared.errors", "workspace/shared/src/errors.ts.j2", "{{ shared_package }}/src/errors.ts"),
    Template("shared.validation", "workspace/shared/src/validation.ts.j2", "{{ shared_package }}/src/validation.ts"),
    Template("shared.errors_test", "workspace/shared/src/errors.test.ts.j2", "{{ shared_package }}/src/errors.test.ts"),
    # Example subpackage
    Template("example.package_json", "workspace/example/package.json.j2", "packages/{{ example_package }}/package.json"),
    Template("example.tsconfig", "workspace/example/tsconfig.json.j2", "packages/{{ example_package }}/tsconfig.json"),
    Template("example.vitest_config", "workspace/vitest.config.ts.j2", "packages/{{ example_package }}/vitest.config.ts"),
    Template("example.wrangler", "workspace/example/wrangler.toml.j2", "packages/{{ example_package }}/wrangler.toml"),
    Template("example.index", "workspace/example/src/index.ts.j2", "packages/{{ example_package }}/src/index.ts"),
    Template("example.index_test", "workspace/example/src/index.test.ts.j2", "packages/{{ example_package }}/src/index.test.ts"),
    *_HOOKS,
    *_EDITOR_SETTINGS,
    Template("workspace.claude_settings", "common/claude/settings.json.j2", ".claude/settings.json"),
    Template("workspace.claude_md", "workspace/CLAUDE.md.j2", "CLAUDE.md"),
)

WORKSPACE_DIRECTORIES: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TemplateCatalog:
    """Registry of templates and bare directories per project kind.

    The default catalog covers every :class:`ProjectKind`; tests may pass
    synthetic registries to exercise the renderer and materializer.
    """

    def __init__(
        self,
        templates: dict[ProjectKind, tuple[Template, ...]] | None = None,
        directories: dict[ProjectKind, tuple[str, ...]] | None = None,
    ) -> None:
        self._templates = templates if templates is not None else {
            ProjectKind.WORKER: WORKER_TEMPLATES,
            ProjectKind.WORKSPACE: WORKSPACE_TEMPLATES,
        }
        self._directories = directories if directories is not None else {
            ProjectKind.WORKER: WORKER_DIRECTORIES,
            ProjectKind.WORKSPACE: WORKSPACE_DIRECTORIES,
        }

    def templates(self, kind: ProjectKind) -> tuple[Template, ...]:
        """Every template declared for *kind*, in declaration order."""
        return self._templates.get(kind, ())

    def directories(self, kind: ProjectKind) -> tuple[str, ...]:
        """Directories created even when no template writes into them."""
        return self._directories.get(kind, ())

    def select(self, config: ProjectConfig) -> list[Template]:
        """Templates whose ``applies_when`` predicate holds for *config*."""
        return [t for t in self.templates(config.kind) if t.applies_when(config)]

