"""
cli.py — command-line entry point for modforge.

Usage
-----
# Report the features this copy of the tool supports (one per line)
modforge --query-features

# List every project definition in the module tree of the current directory
modforge --definitions

# Same, including platform-specific submodules for Linux
modforge --definitions Linux --module-dir path/to/module

# Print the canonical spelling of a platform name for this module
modforge --normalize windowsgl

Environment
-----------
MODFORGE_LOG_LEVEL, MODFORGE_RUN_IN_PROCESS, MODFORGE_DELEGATE_EXECUTABLE,
MODFORGE_DELEGATE_MAX_ATTEMPTS, MODFORGE_DELEGATE_RETRY_DELAY_S
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from modforge.config import settings
from modforge.descriptor import find_descriptor, load_module
from modforge.errors import ModforgeError
from modforge.graph import walk_definitions
from modforge.platforms import normalize_platform

logger = logging.getLogger(__name__)

FEATURES: tuple[str, ...] = (
    "query-features",
    "module-redirects",
    "platform-submodules",
    "definition-walk",
)


def _configure_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modforge",
        description="Inspect a multi-module project tree.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--module-dir",
        default=".",
        help="Module root containing Build/Module.xml (default: current directory).",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--query-features",
        action="store_true",
        help="Print supported feature identifiers, one per line.",
    )
    action.add_argument(
        "--definitions",
        nargs="?",
        const="",
        metavar="PLATFORM",
        help="List project definitions across the module tree.",
    )
    action.add_argument(
        "--normalize",
        metavar="PLATFORM",
        help="Print the canonical platform name for this module.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging()

    if args.query_features:
        for feature in FEATURES:
            print(feature)
        return 0

    if args.definitions is None and args.normalize is None:
        parser.print_help()
        return 1

    descriptor = find_descriptor(Path(args.module_dir))
    if descriptor is None:
        print(
            f"ERROR: No Build/Module.xml found under {Path(args.module_dir).resolve()}",
            file=sys.stderr,
        )
        return 1

    try:
        module = load_module(descriptor)

        if args.normalize is not None:
            platform = normalize_platform(module, args.normalize)
            if platform is None:
                print(f"ERROR: Platform '{args.normalize}' is not supported", file=sys.stderr)
                return 1
            print(platform)
            return 0

        platform = None
        if args.definitions:
            platform = normalize_platform(module, args.definitions)
            if platform is None:
                print(f"ERROR: Platform '{args.definitions}' is not supported", file=sys.stderr)
                return 1

        for definition in walk_definitions(module, platform):
            print(f"{definition.name}\t{definition.relative_path}")
    except ModforgeError as exc:
        logger.debug("Command failed: %r", exc.to_dict())
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
