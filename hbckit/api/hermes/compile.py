"""
Bundle -> Hermes bytecode compilation.

`build_hermes_bundle_async` stages a bundle and its source map into a private
workspace, runs `hermesc`, then reads the bytecode and composes the source
map concurrently. The workspace is removed on every exit path.

This module is a *compile-stage* wrapper only:
- It produces bytecode bytes and a composed source map in memory.
- It does not write release artifacts or package them into an app; callers
  decide where the outputs go.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, List, Optional, Sequence, TypeVar, Union

from .errors import CompilerProcessError, CompilerSpawnError, HermesBuildError, SourceMapFormatError
from .sourcemap import Composer
from .toolchain import ProjectToolchain, Toolchain
from .workspace import Workspace, workspace_async

logger = logging.getLogger(__name__)

OPTIMIZE_FLAG = "-O"

T = TypeVar("T")


@dataclass(frozen=True)
class BuildRequest:
    project_root: Path
    code: Union[str, bytes]
    source_map: str
    optimize: bool = False


@dataclass(frozen=True)
class BuildResult:
    """
    Outputs of one build.

    `bytecode` is the raw `.hbc` file; `source_map` is the composed map as
    JSON text, mapping bytecode positions back to the original sources.
    """

    bytecode: bytes
    source_map: str


def hermesc_args(hbc_path: Path, bundle_path: Path, *, optimize: bool = False) -> List[str]:
    """Arguments passed to hermesc after the executable path."""
    args = ["-emit-binary", "-out", str(hbc_path), str(bundle_path), "-output-source-map"]
    if optimize:
        args.append(OPTIMIZE_FLAG)
    return args


async def run_hermesc(argv: Sequence[str], *, cwd: Optional[Path] = None) -> None:
    """
    Run the compiler to completion.

    Raises `CompilerSpawnError` if the process cannot start and
    `CompilerProcessError` on a non-zero exit. If the awaiting task is
    cancelled the child is killed and reaped before cancellation propagates.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except OSError as exc:
        raise CompilerSpawnError(f"unable to start hermesc ({argv[0]}): {exc}") from exc

    try:
        stdout, stderr = await proc.communicate()
    except BaseException:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
        raise

    if proc.returncode != 0:
        raise CompilerProcessError(
            argv,
            proc.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )


def create_hermes_sourcemap(source_map: str, hermes_map_file: Path, *, composer: Composer) -> str:
    """Compose the bundler map text with the map hermesc wrote to `hermes_map_file`."""
    try:
        bundler_map = json.loads(source_map)
    except json.JSONDecodeError as exc:
        raise SourceMapFormatError(f"bundler source map is not valid JSON: {exc}") from exc
    try:
        hermes_map = json.loads(Path(hermes_map_file).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SourceMapFormatError(f"hermesc did not write a source map at {hermes_map_file}") from exc
    except json.JSONDecodeError as exc:
        raise SourceMapFormatError(f"hermesc source map is not valid JSON: {exc}") from exc
    return json.dumps(composer([bundler_map, hermes_map]), separators=(",", ":"))


def _stage_inputs(ws: Workspace, request: BuildRequest) -> None:
    code = request.code.encode("utf-8") if isinstance(request.code, str) else request.code
    ws.bundle.write_bytes(code)
    ws.bundle_map.write_text(request.source_map, encoding="utf-8")


def _read_bytecode(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise HermesBuildError(f"hermesc exited successfully but wrote no bytecode at {path}") from exc


async def _finish_in_workspace(aw: Awaitable[T]) -> T:
    """
    Await work that touches the workspace from worker threads.

    Threads cannot be interrupted, so on cancellation this waits for the work
    to finish before re-raising; the workspace is only released afterwards.
    A `MetroComposer` node child runs inside the composing thread and is
    waited for the same way.
    """
    fut = asyncio.ensure_future(aw)
    try:
        return await asyncio.shield(fut)
    except asyncio.CancelledError:
        await asyncio.wait([fut])
        if not fut.cancelled():
            fut.exception()
        raise


async def build_hermes_bundle_async(
    request: BuildRequest,
    *,
    toolchain: Optional[Toolchain] = None,
    workspace_root: Optional[Path] = None,
) -> BuildResult:
    toolchain = toolchain or ProjectToolchain()
    project_root = Path(request.project_root)
    composer = toolchain.resolve_composer(project_root)
    hermesc = toolchain.resolve_executable(project_root)

    async with workspace_async(workspace_root) as ws:
        await _finish_in_workspace(asyncio.to_thread(_stage_inputs, ws, request))

        argv = [str(hermesc), *hermesc_args(ws.hbc, ws.bundle, optimize=request.optimize)]
        logger.info("compiling %s (optimize=%s)", ws.bundle, request.optimize)
        await run_hermesc(argv, cwd=ws.path)

        # Join both reads before leaving the workspace; the first failure wins.
        results = await _finish_in_workspace(
            asyncio.gather(
                asyncio.to_thread(_read_bytecode, ws.hbc),
                asyncio.to_thread(create_hermes_sourcemap, request.source_map, ws.hbc_map, composer=composer),
                return_exceptions=True,
            )
        )
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome
        bytecode, source_map = results

    logger.info("built %d bytes of bytecode", len(bytecode))
    return BuildResult(bytecode=bytecode, source_map=source_map)


def build_hermes_bundle(
    request: BuildRequest,
    *,
    toolchain: Optional[Toolchain] = None,
    workspace_root: Optional[Path] = None,
) -> BuildResult:
    """Blocking wrapper around `build_hermes_bundle_async`."""
    return asyncio.run(build_hermes_bundle_async(request, toolchain=toolchain, workspace_root=workspace_root))
