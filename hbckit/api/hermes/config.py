"""
Environment-driven settings for the Hermes build pipeline.

- `HBC_HERMESC`: explicit compiler path; skips node_modules lookup.
- `HBC_COMPOSER`: `metro` (compose through the project's metro-source-map)
  or `builtin` (pure-Python composer in `hbckit.api.hermes.sourcemap`).
- `HBC_WORKSPACE_ROOT`: parent directory for build workspaces
  (default: the system temp directory).
- `HBC_NODE`: node executable used for the metro bridge (default: `node` on PATH).
- `HBC_LOG_LEVEL`: log level used by the CLI (default `WARNING`).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

COMPOSER_CHOICES = ("metro", "builtin")


@dataclass(frozen=True)
class Settings:
    hermesc: Optional[Path]
    composer: str
    workspace_root: Optional[Path]
    node: Optional[str]
    log_level: str


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser() if value else None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    composer = env.get("HBC_COMPOSER", "metro").strip().lower()
    if composer not in COMPOSER_CHOICES:
        raise ValueError(f"HBC_COMPOSER must be one of {', '.join(COMPOSER_CHOICES)} (got {composer!r})")
    return Settings(
        hermesc=_optional_path(env.get("HBC_HERMESC")),
        composer=composer,
        workspace_root=_optional_path(env.get("HBC_WORKSPACE_ROOT")),
        node=env.get("HBC_NODE") or None,
        log_level=env.get("HBC_LOG_LEVEL", "WARNING").upper(),
    )


def current() -> Settings:
    """Settings as seen by the current process environment."""
    return load_settings()
