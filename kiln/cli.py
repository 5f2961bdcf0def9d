from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from kiln.core.artifacts import build_artifact_manifest, verify_artifacts, write_artifact_manifest
from kiln.core.config import KilnConfig, load_config
from kiln.core.errors import KilnError, PreflightBlocked
from kiln.core.execution.executor import RC_INTERRUPTED, RC_PREFLIGHT_BLOCKED, Executor
from kiln.core.execution.registry import RunRegistry
from kiln.core.recipes import RecipeRegistry, render_recipe

log = logging.getLogger("kiln.cli")

RECIPE_COMMANDS = ("build", "upload", "upload-test", "debug", "develop", "venv")


def _configure_logging(verbose: int) -> None:
    level = logging.DEBUG if verbose > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _print_json(obj) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _cmd_recipe(args: argparse.Namespace, config: KilnConfig) -> int:
    ex = Executor(config)
    try:
        rec = ex.run(
            args.command,
            dry_run=args.dry_run,
            force=args.force,
            check_network=args.check_network,
        )
    except PreflightBlocked as e:
        print(f"kiln: {args.command} blocked:", file=sys.stderr)
        for r in e.reasons:
            print(f"  - {r}", file=sys.stderr)
        return RC_PREFLIGHT_BLOCKED

    if args.dry_run:
        for s in rec.steps:
            print(" ".join(s.argv) if s.kind != "clean" else f"rm -rf {s.argv[0]}/*")

    if rec.exit_code:
        print(f"kiln: {args.command} failed: {rec.last_error}", file=sys.stderr)
    return int(rec.exit_code or 0)


def _cmd_list(args: argparse.Namespace, config: KilnConfig) -> int:
    registry = RecipeRegistry(config)
    for recipe in registry.list():
        print(f"{recipe.name:<12} {recipe.description or ''}")
        if args.steps:
            for s in render_recipe(recipe, config):
                print(f"    {s.display()}")
    return 0


def _cmd_runs(args: argparse.Namespace, config: KilnConfig) -> int:
    registry = RunRegistry(state_dir=config.state_path)
    if args.reconcile is not None:
        n = registry.reconcile_stale(args.reconcile)
        log.info("reconciled %d stale run(s)", n)
    runs = registry.list(recipe=args.recipe, limit=args.limit)
    if args.json:
        _print_json([r.to_dict() for r in runs])
        return 0
    for r in runs:
        print(f"{r.run_id:<48} {r.state.value:<10} exit={r.exit_code}{' dry-run' if r.dry_run else ''}")
    return 0


def _cmd_show(args: argparse.Namespace, config: KilnConfig) -> int:
    registry = RunRegistry(state_dir=config.state_path)
    try:
        rec = registry.get(args.run_id)
    except ValueError as e:
        print(f"kiln: {e}", file=sys.stderr)
        return 2
    if rec is None:
        print(f"kiln: run not found: {args.run_id}", file=sys.stderr)
        return 1
    _print_json(rec.to_dict())
    return 0


def _cmd_artifacts(args: argparse.Namespace, config: KilnConfig) -> int:
    wheels = config.wheels_path
    manifest = build_artifact_manifest(wheels)
    if args.write_manifest:
        path = write_artifact_manifest(wheels, manifest)
        log.info("wrote %s", path)

    if args.verify:
        result = verify_artifacts(wheels)
        _print_json(result)
        return 0 if result["ok"] else 1

    for f in manifest["files"]:
        print(f"{f['name']:<70} {f['kind']:<6} {f['size']:>10}  {f['sha256'][:16]}")
    if not manifest["files"]:
        print(f"(no artifacts in {config.wheels_dir})")
    return 0


def _cmd_serve(args: argparse.Namespace, config: KilnConfig) -> int:
    import uvicorn

    # the app resolves its own config from the environment
    os.environ["KILN_PROJECT_ROOT"] = str(config.project_root)
    if args.config is not None:
        os.environ["KILN_CONFIG"] = str(config.resolve(str(args.config)))
    uvicorn.run("kiln.api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="kiln", description="Build and publish a maturin extension")
    ap.add_argument("--project-root", type=Path, default=None, help="Project directory (default: cwd)")
    ap.add_argument("--config", type=Path, default=None, help="Config file (default: <root>/kiln.yaml)")
    ap.add_argument("-v", "--verbose", action="count", default=0)

    sub = ap.add_subparsers(dest="command", required=True)

    for name in RECIPE_COMMANDS:
        p = sub.add_parser(name, help=f"run the {name} recipe")
        p.add_argument("--dry-run", action="store_true", help="print the commands without running them")
        p.add_argument("--force", action="store_true", help="skip preflight checks")
        p.add_argument("--check-network", action="store_true", help="probe the package index first")
        p.set_defaults(func=_cmd_recipe)

    p = sub.add_parser("list", help="list recipes")
    p.add_argument("--steps", action="store_true", help="show each recipe's commands")
    p.set_defaults(func=_cmd_list)

    p = sub.add_parser("runs", help="show run history")
    p.add_argument("--recipe", default=None)
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--json", action="store_true")
    p.add_argument("--reconcile", type=int, default=None, metavar="SECONDS", help="fail runs stuck longer than SECONDS")
    p.set_defaults(func=_cmd_runs)

    p = sub.add_parser("show", help="show one run record")
    p.add_argument("run_id")
    p.set_defaults(func=_cmd_show)

    p = sub.add_parser("artifacts", help="list built artifacts")
    p.add_argument("--verify", action="store_true", help="check wheel/sdist structure")
    p.add_argument("--write-manifest", action="store_true", help="write a sha256 manifest next to the artifacts")
    p.set_defaults(func=_cmd_artifacts)

    p = sub.add_parser("serve", help="serve the HTTP API")
    p.add_argument("--host", default=os.getenv("KILN_HOST", "127.0.0.1"))
    p.add_argument("--port", type=int, default=int(os.getenv("KILN_PORT", "8001")))
    p.set_defaults(func=_cmd_serve)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(project_root=args.project_root, path=args.config)
        return args.func(args, config)
    except KeyboardInterrupt:
        print("kiln: interrupted", file=sys.stderr)
        return RC_INTERRUPTED
    except KilnError as e:
        print(f"kiln: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
