"""negpath CLI — inspect the failure-mode catalog and configuration.

Usage:
    negpath catalog                     List every failure mode
    negpath catalog --granularity order Only modes aimed at a single order
    negpath catalog --json              Machine-readable listing
    negpath config                      Show current configuration
    negpath --version                   Print version
"""

from __future__ import annotations

import argparse
import json
import sys

from negpath import __version__
from negpath.core.config import get_settings
from negpath.core.logging import setup_logging
from negpath.fuzzer.failures import Granularity
from negpath.fuzzer.registry import REGISTRY


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_CYAN = "\033[96m"
_DIM = "\033[2m"

_GRANULARITY_COLOR = {
    Granularity.CONTEXT: _CYAN,
    Granularity.ORDER: "",
    Granularity.CRITERIA_RESOLVER: _DIM,
}


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="negpath",
        description="negpath — negative-path mutation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")

    sub = parser.add_subparsers(dest="command")

    # ── catalog ──────────────────────────────────────────────────────────────
    catalog_p = sub.add_parser("catalog", help="List registered failure modes")
    catalog_p.add_argument(
        "--granularity",
        "-g",
        choices=[g.value for g in Granularity],
        help="Only list modes aimed at this kind of target",
    )
    catalog_p.add_argument("--json", action="store_true", help="Emit JSON instead of a table")

    # ── config ───────────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Catalog command ──────────────────────────────────────────────────────────


def _run_catalog(args: argparse.Namespace) -> int:
    specs = list(REGISTRY.values())
    if args.granularity:
        specs = [s for s in specs if s.granularity.value == args.granularity]

    if args.json:
        print(json.dumps(
            [
                {
                    "failure": s.failure.value,
                    "granularity": s.granularity.value,
                    "description": s.description,
                }
                for s in specs
            ],
            indent=2,
        ))
        return 0

    print(f"\n{_BOLD}{len(specs)} failure mode(s){_RESET}\n")
    for s in specs:
        tag = _c(f"{s.granularity.value:<17}", _GRANULARITY_COLOR[s.granularity])
        print(f"  {tag} {s.failure.value:<50} {_c(s.description, _DIM)}")
    print()
    return 0


# ── Config command ───────────────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings."""
    s = get_settings()
    print(f"\n{_BOLD}negpath configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        print(f"  {_DIM}{field_name}:{_RESET}  {getattr(s, field_name, '')}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    setup_logging(env=settings.app_env, log_level=settings.log_level)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"negpath {__version__}")
        return 0

    if args.command == "catalog":
        return _run_catalog(args)

    if args.command == "config":
        return _run_config()

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
