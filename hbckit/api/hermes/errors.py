"""
Error taxonomy for the Hermes build pipeline.

Every failure surfaced by `hbckit.api.hermes` is a `HermesBuildError`, grouped
by what went wrong:
- configuration/environment: a required executable or library is missing
  from the host project, or the host platform has no compiler build;
- process: the compiler could not be spawned or exited non-zero;
- format: malformed source maps or bytecode headers;
- filesystem: the scoped workspace could not be created or removed.

None of these are retried; a build either produces both artifacts or raises.
"""

from __future__ import annotations

from typing import Optional, Sequence


class HermesBuildError(Exception):
    """Base error for the bytecode build pipeline."""


class MissingDependencyError(HermesBuildError):
    """Raised when a required module is not installed in the host project."""

    def __init__(self, module: str, reason: str, *, message: Optional[str] = None) -> None:
        self.module = module
        if message is not None:
            super().__init__(message)
            return
        super().__init__(
            f'Missing module "{module}" in the project. '
            f"This usually means {reason} is not installed. "
            'Please verify that dependencies in package.json include "react-native" '
            "and run `yarn` or `npm install`."
        )


class ProjectRootError(HermesBuildError):
    """Raised when no project root is given and none can be found."""


class UnsupportedPlatformError(HermesBuildError):
    """Raised when no compiler build exists for the host platform."""


class CompilerSpawnError(HermesBuildError):
    """Raised when the compiler process could not be started."""


class CompilerProcessError(HermesBuildError):
    """Raised when the compiler exits with a non-zero status."""

    def __init__(
        self,
        argv: Sequence[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        msg = (stderr or stdout or "").strip()
        msg = " ".join(msg.split())
        detail = f": {msg}" if msg else ""
        super().__init__(f"hermesc exited with status {returncode}{detail}")


class SourceMapFormatError(HermesBuildError):
    """Raised when a source map is not valid JSON or not a v3 map."""


class InvalidBundleError(HermesBuildError):
    """Raised when a file does not carry the Hermes bytecode magic."""


class HeaderTooShortError(InvalidBundleError):
    """Raised when a file is shorter than the fixed bytecode header."""


class WorkspaceError(HermesBuildError):
    """Raised when the build workspace cannot be created or removed."""
