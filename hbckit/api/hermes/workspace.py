"""
Scoped build workspaces.

A workspace is a private temporary directory owned by exactly one build. It
holds the staged bundle and map plus whatever the compiler writes next to
them, and it is removed on every exit path: success, compiler failure,
composition failure, cancellation, or an external deadline.

Directory names carry the process id and a random suffix so that concurrent
builds (in one process or many) never share a directory.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Iterator, Optional

from . import config
from .errors import WorkspaceError

logger = logging.getLogger(__name__)

BUNDLE_NAME = "index.bundle"
BUNDLE_MAP_NAME = "index.bundle.map"
HBC_NAME = "index.hbc"
HBC_MAP_NAME = "index.hbc.map"


@dataclass(frozen=True)
class Workspace:
    path: Path

    @property
    def bundle(self) -> Path:
        return self.path / BUNDLE_NAME

    @property
    def bundle_map(self) -> Path:
        return self.path / BUNDLE_MAP_NAME

    @property
    def hbc(self) -> Path:
        return self.path / HBC_NAME

    @property
    def hbc_map(self) -> Path:
        # hermesc writes its map next to the -out path
        return self.path / HBC_MAP_NAME


def acquire_workspace(root: Optional[Path] = None) -> Workspace:
    """Create a fresh, uniquely named workspace directory."""
    parent = root or config.current().workspace_root
    try:
        if parent is not None:
            Path(parent).mkdir(parents=True, exist_ok=True)
        path = tempfile.mkdtemp(prefix=f"hbc-build-{os.getpid()}-", dir=parent)
    except OSError as exc:
        raise WorkspaceError(f"unable to create build workspace: {exc}") from exc
    ws = Workspace(path=Path(path))
    logger.debug("acquired workspace %s", ws.path)
    return ws


def release_workspace(ws: Workspace, *, strict: bool = True) -> None:
    """
    Recursively remove a workspace.

    With `strict=False` a removal failure is logged instead of raised; callers
    use this while a more significant error is already propagating.
    """
    try:
        shutil.rmtree(ws.path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        if strict:
            raise WorkspaceError(f"unable to remove build workspace {ws.path}: {exc}") from exc
        logger.warning("failed to remove workspace %s: %s", ws.path, exc)
        return
    logger.debug("released workspace %s", ws.path)


@contextlib.contextmanager
def workspace(root: Optional[Path] = None) -> Iterator[Workspace]:
    ws = acquire_workspace(root)
    try:
        yield ws
    except BaseException:
        release_workspace(ws, strict=False)
        raise
    release_workspace(ws)


def _discard_acquired(fut: asyncio.Future[Workspace]) -> None:
    # cancelled while the worker was still creating the directory
    if not fut.cancelled() and fut.exception() is None:
        release_workspace(fut.result(), strict=False)


@contextlib.asynccontextmanager
async def workspace_async(root: Optional[Path] = None) -> AsyncIterator[Workspace]:
    """
    Async flavour of `workspace`; release also runs on task cancellation.

    Creation and removal run in worker threads so the event loop keeps
    serving other builds while a large workspace is deleted.
    """
    acquiring = asyncio.ensure_future(asyncio.to_thread(acquire_workspace, root))
    try:
        ws = await asyncio.shield(acquiring)
    except asyncio.CancelledError:
        acquiring.add_done_callback(_discard_acquired)
        raise
    try:
        yield ws
    except BaseException:
        await asyncio.shield(asyncio.to_thread(release_workspace, ws, strict=False))
        raise
    await asyncio.to_thread(release_workspace, ws)
