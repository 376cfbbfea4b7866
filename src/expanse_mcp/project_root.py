from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional

from .shared.logging import get_logger

logger = get_logger(__name__)

DESKTOP_MARKERS = (".expanse.json", "expanse.json", "project.json", "scene.json", "app.json", "Config.json")
DESKTOP_MARKER_DIRS = ("spaces", "config")

_cached_root: Optional[Path] = None


def is_likely_desktop_project(directory: Path) -> bool:
    for marker in DESKTOP_MARKERS:
        if (directory / marker).exists():
            return True
    return any((directory / name).is_dir() for name in DESKTOP_MARKER_DIRS)


def discover_desktop_project(base: Path) -> Optional[Path]:
    try:
        entries = sorted(base.iterdir())
    except OSError:
        return None
    for entry in entries:
        if entry.is_dir() and is_likely_desktop_project(entry):
            return entry
    return None


def desktop_base_dirs(environ: Optional[Mapping[str, str]] = None, desktop_root: Optional[str] = None) -> List[Path]:
    env = os.environ if environ is None else environ
    bases: List[Path] = []
    explicit = desktop_root or env.get("EIGHTHWALL_DESKTOP_ROOT")
    if explicit:
        bases.append(Path(explicit).expanduser())
    home = Path.home()
    bases.append(home / "Documents" / "8th-Wall")
    bases.append(home / "Documents" / "8th Wall")
    return bases


def desktop_base_dir(environ: Optional[Mapping[str, str]] = None, desktop_root: Optional[str] = None) -> Path:
    """The folder holding Desktop projects; prefers one that exists."""
    bases = desktop_base_dirs(environ, desktop_root)
    if desktop_root or (environ if environ is not None else os.environ).get("EIGHTHWALL_DESKTOP_ROOT"):
        return bases[0]
    for base in bases:
        if base.is_dir():
            return base
    return bases[-1]


def get_project_root(
    override: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    desktop_root: Optional[str] = None,
) -> Path:
    global _cached_root
    if override:
        return Path(os.path.abspath(os.path.expanduser(override)))
    env = os.environ if environ is None else environ
    if env.get("PROJECT_ROOT"):
        return Path(os.path.abspath(os.path.expanduser(env["PROJECT_ROOT"])))
    if _cached_root is not None:
        return _cached_root

    for base in desktop_base_dirs(env, desktop_root):
        detected = discover_desktop_project(base)
        if detected is not None:
            logger.info("Discovered Desktop project at %s", detected)
            _cached_root = Path(os.path.abspath(detected))
            return _cached_root

    _cached_root = Path(os.path.abspath("project"))
    return _cached_root


def reset_cached_project_root(root: Optional[str] = None) -> None:
    global _cached_root
    _cached_root = Path(os.path.abspath(root)) if root else None
