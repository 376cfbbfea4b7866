"""Project-relative path resolution.

This is a textual check: symlinks are not followed and case-insensitive
filesystems get no special treatment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .shared.errors import PathEscapeError

PathLike = Union[str, "os.PathLike[str]"]


def resolve_path(root: PathLike, relative_path: PathLike) -> Path:
    """Resolve ``relative_path`` against ``root``.

    Raises ``PathEscapeError`` unless the result is ``root`` itself or nested
    under it.
    """
    base = os.path.abspath(os.fspath(root))
    full = os.path.normpath(os.path.join(base, os.fspath(relative_path)))
    try:
        rel = os.path.relpath(full, base)
    except ValueError as exc:
        # different drive on Windows
        raise PathEscapeError(os.fspath(relative_path), base) from exc
    if rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
        raise PathEscapeError(os.fspath(relative_path), base)
    return Path(full)


def relative_to_root(root: PathLike, full_path: PathLike) -> str:
    return Path(os.path.relpath(os.fspath(full_path), os.path.abspath(os.fspath(root)))).as_posix()


@dataclass
class ProjectContext:
    """Per-registry project root; tools resolve every path through it."""

    root: Path

    def __post_init__(self) -> None:
        self.root = Path(os.path.abspath(os.fspath(self.root)))

    def resolve(self, relative_path: PathLike) -> Path:
        return resolve_path(self.root, relative_path)

    def relative(self, full_path: PathLike) -> str:
        return relative_to_root(self.root, full_path)

    def set_root(self, root: PathLike) -> Path:
        self.root = Path(os.path.abspath(os.fspath(root)))
        return self.root
