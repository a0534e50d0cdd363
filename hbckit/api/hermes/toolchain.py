"""
Host-project toolchain lookup.

The build pipeline needs two things from the project it builds for:
- the `hermesc` executable shipped by `hermes-engine` for this host, and
- a source map composer (metro's `composeSourceMaps`, or the built-in one).

Both are resolved behind the small `Toolchain` interface so the pipeline in
`hbckit.api.hermes.compile` never touches package resolution directly. Tests
pass their own toolchain with a stub compiler.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional, Protocol, Sequence

from hbckit.api import path_utils

from . import config
from .errors import HermesBuildError, MissingDependencyError, SourceMapFormatError, UnsupportedPlatformError
from .sourcemap import Composer, SourceMap, compose_source_maps

logger = logging.getLogger(__name__)

HERMES_ENGINE = "hermes-engine"
METRO_COMPOSE_MODULE = "metro-source-map/src/composeSourceMaps"

PLATFORM_EXECUTABLES = {
    "darwin": "osx-bin/hermesc",
    "linux": "linux64-bin/hermesc",
    "win32": "win64-bin/hermesc.exe",
}

# Reads a JSON array of maps on stdin and writes the composed map to stdout.
_METRO_BRIDGE = """
const mod = require(process.argv[1]);
const compose = typeof mod === 'function' ? mod : mod.default;
let input = '';
process.stdin.setEncoding('utf8');
process.stdin.on('data', (chunk) => { input += chunk; });
process.stdin.on('end', () => {
  process.stdout.write(JSON.stringify(compose(JSON.parse(input))));
});
"""


class Toolchain(Protocol):
    def resolve_executable(self, project_root: Path) -> Path: ...

    def resolve_composer(self, project_root: Path) -> Composer: ...


def host_platform_executable(system: Optional[str] = None) -> str:
    """Path of the compiler binary inside `hermes-engine` for this host."""
    system = system or sys.platform
    try:
        return PLATFORM_EXECUTABLES[system]
    except KeyError:
        raise UnsupportedPlatformError(f"Unsupported host platform for Hermes compiler: {system}") from None


class MetroComposer:
    """Compose maps by running the project's metro-source-map under node."""

    def __init__(self, module_path: Path, node: str) -> None:
        self.module_path = module_path
        self.node = node

    def __call__(self, maps: Sequence[SourceMap]) -> SourceMap:
        argv = [self.node, "-e", _METRO_BRIDGE, str(self.module_path)]
        try:
            proc = subprocess.run(
                argv,
                input=json.dumps(list(maps)),
                text=True,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise HermesBuildError(f"unable to run node for metro composeSourceMaps: {exc}") from exc
        if proc.returncode != 0:
            msg = " ".join((proc.stderr or proc.stdout or "").split())
            raise HermesBuildError(f"metro composeSourceMaps failed (status {proc.returncode}): {msg}")
        try:
            return json.loads(proc.stdout)
        except json.JSONDecodeError as exc:
            raise SourceMapFormatError(f"metro composeSourceMaps returned invalid JSON: {exc}") from exc


class ProjectToolchain:
    """Resolve the compiler and composer from a project's node_modules."""

    def __init__(self, settings: Optional[config.Settings] = None) -> None:
        self.settings = settings or config.current()

    def resolve_executable(self, project_root: Path) -> Path:
        override = self.settings.hermesc
        if override is not None:
            if not override.is_file():
                raise MissingDependencyError(
                    str(override),
                    HERMES_ENGINE,
                    message=f"HBC_HERMESC points at {override}, which does not exist.",
                )
            return override
        request = f"{HERMES_ENGINE}/{host_platform_executable()}"
        resolved = path_utils.resolve_from(project_root, request)
        if resolved is None:
            raise MissingDependencyError(request, HERMES_ENGINE)
        logger.debug("resolved hermesc at %s", resolved)
        return resolved

    def resolve_composer(self, project_root: Path) -> Composer:
        if self.settings.composer == "builtin":
            return compose_source_maps
        module_path = path_utils.resolve_from(project_root, METRO_COMPOSE_MODULE)
        if module_path is None:
            raise MissingDependencyError(METRO_COMPOSE_MODULE, "React Native")
        node = self.settings.node or shutil.which("node")
        if not node:
            raise MissingDependencyError(
                "node",
                "Node.js",
                message="node not found (required to run metro-source-map); install Node.js or set HBC_COMPOSER=builtin.",
            )
        logger.debug("resolved metro composer at %s (node=%s)", module_path, node)
        return MetroComposer(module_path, node)


class StaticToolchain:
    """A toolchain with a fixed compiler path and composer."""

    def __init__(self, executable: Path, composer: Composer = compose_source_maps) -> None:
        self.executable = Path(executable)
        self.composer = composer

    def resolve_executable(self, project_root: Path) -> Path:
        return self.executable

    def resolve_composer(self, project_root: Path) -> Composer:
        return self.composer
