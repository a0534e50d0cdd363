"""
Helpers for consistent project-root path handling.

These utilities locate the project a bundle belongs to and keep CLI output
project-relative. `resolve_from` mirrors node's module lookup so that
executables and helper scripts shipped inside `node_modules` can be found
from any directory of a JavaScript project.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

Pathish = Union[str, Path]


def find_project_root(start: Path | None = None) -> Path:
    """
    Walk upward from `start` (or the current directory) until we find a
    directory that looks like a JavaScript project root.
    """
    return _find_project_root((start or Path.cwd()).resolve())


@lru_cache()
def _find_project_root(cur: Path) -> Path:
    git_root: Path | None = None
    for candidate in [cur] + list(cur.parents):
        if (candidate / "package.json").exists():
            return candidate
        if git_root is None and (candidate / ".git").exists():
            git_root = candidate
    if git_root:
        return git_root
    raise RuntimeError("Unable to locate project root")


def resolve_from(project_root: Pathish, request: str) -> Optional[Path]:
    """
    Resolve `request` (e.g. `hermes-engine/linux64-bin/hermesc`) against the
    `node_modules` directories visible from `project_root`.

    Returns None when nothing matches, like `resolve-from`'s silent mode.
    Only exact files and `.js` files are considered; package `main` fields
    are not consulted.
    """
    start = Path(project_root).resolve()
    for candidate in [start] + list(start.parents):
        base = candidate / "node_modules" / request
        for path in (base, base.with_name(base.name + ".js")):
            if path.is_file():
                return path
    return None


def to_project_relative(path: Pathish, project_root: Path | None = None) -> str:
    """Return a project-relative string if possible, otherwise the absolute string."""
    p = Path(path).resolve()
    root = (project_root or find_project_root()).resolve()
    try:
        return str(p.relative_to(root))
    except ValueError:
        return str(p)
