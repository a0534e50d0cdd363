from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

MAGIC = bytes.fromhex("c61fbc03c103191f")
STUB_VERSION = 96

# bytecode offset 10 on line 0 -> index.bundle line 2, column 0
STUB_HERMES_MAP = {"version": 3, "sources": ["index.bundle"], "names": [], "mappings": "UAEA"}
# index.bundle line 2, column 0 -> a.js line 0, column 0
BUNDLER_MAP = {"version": 3, "sources": ["a.js"], "names": [], "mappings": ";;AAAA"}

_STUB_TEMPLATE = """#!{python}
import json
import sys
import time

args = sys.argv[1:]
argv_log = {argv_log!r}
if argv_log:
    with open(argv_log, "a") as fh:
        fh.write(json.dumps(args) + "\\n")
mode = {mode!r}
if mode == "fail":
    sys.stderr.write("error: unexpected token at 1:1\\n")
    sys.exit(3)
if mode == "hang":
    time.sleep(60)
out = args[args.index("-out") + 1]
bundle = args[args.index("-out") + 2]
with open(bundle, "rb") as fh:
    code = fh.read()
with open(out, "wb") as fh:
    fh.write(bytes.fromhex({magic!r}) + ({version}).to_bytes(4, "little") + code)
if mode == "no-map":
    sys.exit(0)
with open(out + ".map", "w") as fh:
    if mode == "bad-map":
        fh.write("{{not json")
    else:
        json.dump({hermes_map!r}, fh)
"""


@pytest.fixture
def make_stub_hermesc(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable stand-in for hermesc that copies its input behind a bytecode header."""
    if sys.platform == "win32":
        pytest.skip("stub compiler relies on a shebang line")

    def _make(mode: str = "ok", argv_log: Optional[Path] = None) -> Path:
        path = tmp_path / "bin" / f"hermesc-{mode}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            _STUB_TEMPLATE.format(
                python=sys.executable,
                argv_log=str(argv_log) if argv_log else None,
                mode=mode,
                magic=MAGIC.hex(),
                version=STUB_VERSION,
                hermes_map=STUB_HERMES_MAP,
            )
        )
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def bundler_map_text() -> str:
    return json.dumps(BUNDLER_MAP)


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root
