"""stackseed scaffolder -- renders and writes project trees.

Quick usage::

    from stackseed.scaffolder import TemplateCatalog, TemplateRenderer, FilesystemMaterializer

    files = TemplateRenderer().render_catalog(TemplateCatalog(), config)
    tree = await FilesystemMaterializer(config.target_path).materialize(files)
"""

from stackseed.scaffolder.catalog import Template, TemplateCatalog
from stackseed.scaffolder.materializer import FilesystemMaterializer, MaterializedTree
from stackseed.scaffolder.templates import RenderedFile, TemplateRenderer

__all__ = [
    "FilesystemMaterializer",
    "MaterializedTree",
    "RenderedFile",
    "Template",
    "TemplateCatalog",
    "TemplateRenderer",
]
