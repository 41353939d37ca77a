"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``stackseed/scaffolder/templates/`` directory and resolves them against a
:class:`~stackseed.config.ProjectConfig`.  Rendering is pure: it never touches
the target directory, and the same configuration always yields byte-identical
:class:`RenderedFile` objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from jinja2 import TemplateError as JinjaTemplateError

from stackseed.config import ProjectConfig
from stackseed.errors import TemplateError

from .catalog import Template, TemplateCatalog


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

EXAMPLE_PACKAGE = "example"
SHARED_PACKAGE = "shared"


# ---------------------------------------------------------------------------
# Rendered output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenderedFile:
    """The output of applying one template to one configuration."""

    path: PurePosixPath
    content: bytes
    template_id: str
    executable: bool = False


def build_context(config: ProjectConfig) -> dict[str, Any]:
    """Build the Jinja2 template context from the project config.

    Only configuration-derived values go in here; the target path is left
    out so output does not depend on where the project is created.
    """
    return {
        "project_name": config.name,
        "package_scope": f"@{config.name}",
        "shared_package": SHARED_PACKAGE,
        "example_package": EXAMPLE_PACKAGE,
        **config.flags(),
    }


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    The renderer discovers ``.j2`` template files under a configurable
    template directory.  Undefined placeholders are errors, so a template
    that references a value the context does not provide fails loudly with
    :class:`~stackseed.errors.TemplateError` instead of rendering blank.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template file with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"worker/package.json.j2"``).
            context: Dictionary of variables available inside the template.
        """
        try:
            template = self.env.get_template(template_path)
            return template.render(**context)
        except JinjaTemplateError as exc:
            raise TemplateError(template_path, str(exc) or type(exc).__name__) from exc

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string, such as a destination pattern."""
        try:
            return self.env.from_string(template_string).render(**context)
        except JinjaTemplateError as exc:
            raise TemplateError(template_string, str(exc) or type(exc).__name__) from exc

    # -- Catalog rendering -------------------------------------------------

    def render_template(self, template: Template, context: dict[str, Any]) -> RenderedFile:
        """Resolve one catalog entry into a :class:`RenderedFile`."""
        try:
            destination = self.render_string(template.destination, context)
            body = self.render(template.source, context)
        except TemplateError as exc:
            raise TemplateError(template.id, exc.detail) from exc

        path = PurePosixPath(destination)
        if path.is_absolute() or ".." in path.parts or not destination.strip():
            raise TemplateError(template.id, f"destination escapes the target: {destination!r}")

        return RenderedFile(
            path=path,
            content=body.encode("utf-8"),
            template_id=template.id,
            executable=template.executable,
        )

    def render_catalog(
        self, catalog: TemplateCatalog, config: ProjectConfig
    ) -> list[RenderedFile]:
        """Render every template that applies to *config*, in catalog order."""
        context = build_context(config)
        return [self.render_template(t, context) for t in catalog.select(config)]

    # -- Utility -----------------------------------------------------------

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*.

        Paths are relative to the template root directory.
        """
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )
