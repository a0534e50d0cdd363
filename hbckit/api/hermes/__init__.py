"""
Hermes bytecode build tooling.

Subpackages (functional groups):
- `compile`: bundle + source map -> bytecode + composed source map (needs hermesc).
- `workspace`: scoped temporary directories for one build.
- `sourcemap`: source map v3 codec and composition (pure Python).
- `header`: bytecode magic/version inspection (host-neutral).
- `toolchain`: hermesc / composer lookup from a project's node_modules.
- `engine`: JS engine settings checks for native Android projects.

Preferred imports:
- `from hbckit.api.hermes import compile, header, sourcemap`
- Keep top-level convenience imports to a minimum.
"""

from __future__ import annotations

from . import compile as compile  # noqa: F401
from . import engine as engine  # noqa: F401
from . import header as header  # noqa: F401
from . import sourcemap as sourcemap  # noqa: F401
from . import toolchain as toolchain  # noqa: F401
from . import workspace as workspace  # noqa: F401

from .compile import BuildRequest, BuildResult, build_hermes_bundle, build_hermes_bundle_async  # noqa: F401
from .engine import is_enable_hermes_managed, maybe_inconsistent_engine, parse_gradle_properties  # noqa: F401
from .errors import (  # noqa: F401
    CompilerProcessError,
    CompilerSpawnError,
    HeaderTooShortError,
    HermesBuildError,
    InvalidBundleError,
    MissingDependencyError,
    ProjectRootError,
    SourceMapFormatError,
    UnsupportedPlatformError,
    WorkspaceError,
)
from .header import get_hermes_bytecode_version, is_hermes_bytecode_bundle  # noqa: F401
from .sourcemap import compose_source_maps  # noqa: F401
