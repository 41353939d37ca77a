"""Writes rendered files into the target directory.

The materializer owns the target tree for the duration of a run.  It creates
the target root atomically (failing if it already exists), rejects catalog
collisions before the first write, and writes files strictly in the order
they were rendered.  Failures are not rolled back: whatever was written
before the error stays on disk and is listed in the raised error's
``written`` attribute.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, Sequence

from stackseed.errors import (
    ConfigReason,
    ConfigurationError,
    DirectoryCreateError,
    FileWriteError,
    GenerationError,
    TemplateCollisionError,
)
from stackseed.utils import make_executable

from .templates import RenderedFile


@dataclass
class MaterializedTree:
    """Files and directories actually written for one run."""

    root: Path
    files: list[Path] = field(default_factory=list)
    directories: list[Path] = field(default_factory=list)

    def relative_files(self) -> list[str]:
        return [p.relative_to(self.root).as_posix() for p in self.files]


def find_collisions(files: Iterable[RenderedFile]) -> dict[str, list[str]]:
    """Map each destination claimed by more than one file to the template ids."""
    claims: dict[str, list[str]] = {}
    for rendered in files:
        claims.setdefault(rendered.path.as_posix(), []).append(rendered.template_id)
    return {path: ids for path, ids in claims.items() if len(ids) > 1}


def check_collisions(files: Iterable[RenderedFile]) -> None:
    """Raise :class:`TemplateCollisionError` for the first duplicate destination."""
    collisions = find_collisions(files)
    if collisions:
        path, ids = next(iter(collisions.items()))
        raise TemplateCollisionError(path, ids)


class FilesystemMaterializer:
    """Creates the target tree and writes rendered files into it."""

    def __init__(self, target_path: Path) -> None:
        self.target_path = Path(target_path)
        self.tree = MaterializedTree(root=self.target_path)

    async def materialize(
        self,
        files: Sequence[RenderedFile],
        directories: Iterable[str] = (),
    ) -> MaterializedTree:
        """Write *files* (and create bare *directories*) under the target.

        Raises:
            TemplateCollisionError: Two files share a destination; nothing is
                written.
            ConfigurationError: The target appeared after it was resolved.
            DirectoryCreateError / FileWriteError: An OS-level failure; the
                partially written tree is left in place.
        """
        check_collisions(files)

        await self._create_root()
        for rel in directories:
            await self._mkdir(self.target_path / PurePosixPath(rel))
        for rendered in files:
            await self._write(rendered)
        return self.tree

    # -- Internal helpers --------------------------------------------------

    async def _create_root(self) -> None:
        parent = self.target_path.parent
        try:
            await asyncio.to_thread(parent.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryCreateError(
                f"Cannot create {parent}: {exc.strerror or exc}", parent
            ) from exc
        try:
            # Fails if anything claimed the path since the resolver checked it.
            await asyncio.to_thread(self.target_path.mkdir)
        except FileExistsError:
            raise ConfigurationError(
                ConfigReason.TARGET_EXISTS, f"Target already exists: {self.target_path}"
            ) from None
        except OSError as exc:
            raise DirectoryCreateError(
                f"Cannot create {self.target_path}: {exc.strerror or exc}", self.target_path
            ) from exc
        self.tree.directories.append(self.target_path)

    async def _mkdir(self, path: Path) -> None:
        if path.is_dir():
            return
        try:
            await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise self._partial(
                DirectoryCreateError(f"Cannot create {path}: {exc.strerror or exc}", path)
            ) from exc
        self.tree.directories.append(path)

    async def _write(self, rendered: RenderedFile) -> None:
        out = self.target_path / rendered.path
        await self._mkdir(out.parent)
        try:
            await asyncio.to_thread(out.write_bytes, rendered.content)
            if rendered.executable:
                await asyncio.to_thread(make_executable, out)
        except OSError as exc:
            raise self._partial(
                FileWriteError(f"Cannot write {out}: {exc.strerror or exc}", out)
            ) from exc
        self.tree.files.append(out)

    def _partial(self, error: GenerationError) -> GenerationError:
        error.written = list(self.tree.files)
        return error
