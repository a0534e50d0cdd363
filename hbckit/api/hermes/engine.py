"""
JS engine configuration checks.

An app can ask for Hermes in its app config (`android.jsEngine`) while the
native Android project was generated or edited for a different engine. These
helpers read the native files conservatively and report when the two may
disagree; they never modify anything.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

# build.gradle defers to gradle.properties through findProperty('expo.jsEngine')
_PROPS_REFERENCE_RE = re.compile(
    r"""^\s*enableHermes:\s*\(findProperty\('expo.jsEngine'\) \?: "jsc"\) == "hermes",?\s+""",
    re.MULTILINE,
)
_HERMES_BARE_RE = re.compile(r"^\s*enableHermes:\s*true,?\s+", re.MULTILINE)

JS_ENGINE_PROPERTY = "expo.jsEngine"


def is_enable_hermes_managed(expo_config: Mapping[str, Any], platform: str) -> bool:
    if platform != "android":
        return False
    android = expo_config.get("android") or {}
    return isinstance(android, Mapping) and android.get("jsEngine") == "hermes"


def parse_gradle_properties(content: str) -> Dict[str, str]:
    """
    Parse `gradle.properties` text.

    Blank lines and `#` comments are ignored. Each remaining line is split on
    the first `=`; the value is everything after it, untrimmed. Lines with no
    `=` are skipped.
    """
    result: Dict[str, str] = {}
    for raw in content.split("\n"):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            logger.debug("skipping gradle.properties line without '=': %r", line)
            continue
        result[key] = value
    return result


def maybe_inconsistent_engine(project_root: Path, platform: str, is_hermes_managed: bool) -> bool:
    if platform == "android":
        return _maybe_inconsistent_engine_android(Path(project_root), is_hermes_managed)
    return False


def _maybe_inconsistent_engine_android(project_root: Path, is_hermes_managed: bool) -> bool:
    app_build_gradle = project_root / "android" / "app" / "build.gradle"
    if app_build_gradle.exists():
        content = app_build_gradle.read_text(encoding="utf-8")
        is_props_reference = _PROPS_REFERENCE_RE.search(content) is not None
        is_hermes_bare = _HERMES_BARE_RE.search(content) is not None
        if not is_props_reference and is_hermes_managed != is_hermes_bare:
            logger.info("%s disagrees with app config (enableHermes=%s)", app_build_gradle, is_hermes_bare)
            return True

    gradle_properties = project_root / "android" / "gradle.properties"
    if gradle_properties.exists():
        props = parse_gradle_properties(gradle_properties.read_text(encoding="utf-8"))
        is_hermes_bare = props.get(JS_ENGINE_PROPERTY) == "hermes"
        if is_hermes_managed != is_hermes_bare:
            logger.info("%s disagrees with app config (%s=%s)", gradle_properties, JS_ENGINE_PROPERTY, props.get(JS_ENGINE_PROPERTY))
            return True

    return False
