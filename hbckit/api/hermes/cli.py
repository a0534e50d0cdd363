#!/usr/bin/env python3
"""
CLI for Hermes bytecode tooling (build, inspect, check-engine).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from hbckit.api import path_utils

from . import config
from . import compile as compile_mod
from . import engine as engine_mod
from . import header as header_mod
from .errors import HermesBuildError, InvalidBundleError, ProjectRootError


def _project_root(explicit: Path | None, start: Path | None = None) -> Path:
    if explicit:
        return explicit
    try:
        return path_utils.find_project_root(start)
    except RuntimeError as exc:
        raise ProjectRootError(f"{exc} (no package.json or .git found); pass --project-root") from exc


def _default_out(bundle: Path) -> Path:
    return bundle.with_suffix(".hbc")


def build_command(args: argparse.Namespace) -> int:
    bundle: Path = args.bundle
    project_root = _project_root(args.project_root, bundle.resolve().parent)
    request = compile_mod.BuildRequest(
        project_root=project_root,
        code=bundle.read_bytes(),
        source_map=args.map.read_text(encoding="utf-8"),
        optimize=args.optimize,
    )
    result = compile_mod.build_hermes_bundle(request)

    out = args.out or _default_out(bundle)
    map_out = args.map_out or out.with_name(f"{out.name}.map")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.bytecode)
    map_out.parent.mkdir(parents=True, exist_ok=True)
    map_out.write_text(result.source_map, encoding="utf-8")

    version = None
    if len(result.bytecode) >= header_mod.HEADER_SIZE:
        parsed = header_mod.parse_header(result.bytecode)
        version = parsed.version if parsed.is_hermes else None
    out_rel = path_utils.to_project_relative(out, project_root)
    print(
        f"[+] {path_utils.to_project_relative(bundle, project_root)} -> {out_rel} "
        f"(len={len(result.bytecode)}, version={version}) preview: {header_mod.hex_preview(result.bytecode)}"
    )
    print(f"[+] wrote {path_utils.to_project_relative(map_out, project_root)}")
    return 0


def _inspect_one(path: Path) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"path": str(path)}
    try:
        entry["is_hermes_bytecode"] = header_mod.is_hermes_bytecode_bundle(path)
        entry["version"] = header_mod.get_hermes_bytecode_version(path) if entry["is_hermes_bytecode"] else None
    except InvalidBundleError as exc:
        entry["version"] = None
        entry["error"] = str(exc)
    except OSError as exc:
        entry["error"] = f"{type(exc).__name__}: {exc}"
    return entry


def inspect_command(args: argparse.Namespace) -> int:
    items: List[Dict[str, Any]] = [_inspect_one(p) for p in args.paths]
    output = json.dumps(items, indent=2)
    if args.out:
        args.out.write_text(output)
        print(f"[+] wrote {args.out}")
    else:
        print(output)
    return 0 if all("error" not in item for item in items) else 1


def check_engine_command(args: argparse.Namespace) -> int:
    project_root = _project_root(args.project_root)
    app_json = args.app_json or (project_root / "app.json")
    expo_config: Dict[str, Any] = {}
    if app_json.exists():
        doc = json.loads(app_json.read_text())
        expo_config = doc.get("expo", doc) if isinstance(doc, dict) else {}
    managed = engine_mod.is_enable_hermes_managed(expo_config, args.platform)
    inconsistent = engine_mod.maybe_inconsistent_engine(project_root, args.platform, managed)
    print(
        json.dumps(
            {
                "project_root": str(project_root),
                "platform": args.platform,
                "hermes_managed": managed,
                "maybe_inconsistent": inconsistent,
            },
            indent=2,
        )
    )
    return 1 if inconsistent else 0


def main(argv: list[str] | None = None) -> int:
    """
    Entrypoint for the `python -m hbckit.api.hermes` CLI.

    Accepts an optional `argv` for unit tests and embedding.
    """
    settings = config.current()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))

    ap = argparse.ArgumentParser(description="Hermes bytecode tooling (build, inspect, check-engine).")
    sub = ap.add_subparsers(dest="command", required=True)

    ap_build = sub.add_parser("build", help="Compile a JS bundle to Hermes bytecode with a composed source map.")
    ap_build.add_argument("bundle", type=Path, help="JavaScript bundle produced by the bundler")
    ap_build.add_argument("--map", required=True, type=Path, help="Bundler source map for the bundle")
    ap_build.add_argument("--project-root", type=Path, help="Project whose node_modules provide hermesc (default: nearest package.json)")
    ap_build.add_argument("--out", type=Path, help="Bytecode output path (default: <bundle>.hbc)")
    ap_build.add_argument("--map-out", type=Path, help="Composed source map path (default: <out>.map)")
    ap_build.add_argument("-O", "--optimize", action="store_true", help="Pass -O to hermesc")
    ap_build.set_defaults(func=build_command)

    ap_inspect = sub.add_parser("inspect", help="Report magic/version for bytecode files.")
    ap_inspect.add_argument("paths", nargs="+", type=Path, help="Files to inspect")
    ap_inspect.add_argument("--out", "--json", dest="out", type=Path, help="Write JSON to this path instead of stdout")
    ap_inspect.set_defaults(func=inspect_command)

    ap_engine = sub.add_parser("check-engine", help="Check native project JS engine settings against the app config.")
    ap_engine.add_argument("--project-root", type=Path, help="Project root (default: nearest package.json)")
    ap_engine.add_argument("--platform", default="android", help="Target platform (default: android)")
    ap_engine.add_argument("--app-json", type=Path, help="App config JSON (default: <project-root>/app.json)")
    ap_engine.set_defaults(func=check_engine_command)

    args = ap.parse_args(argv)
    try:
        return args.func(args)
    except (HermesBuildError, OSError) as exc:
        print(f"[-] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
