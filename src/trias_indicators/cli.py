"""
Command-line interface for the indicator pipeline.

Each subcommand runs one Prefect flow; ``all`` runs them in order.
"""

from __future__ import annotations

import argparse
import logging
import sys

from trias_indicators import __version__
from trias_indicators.config import get_settings
from trias_indicators.flows.appearing import appearing_all
from trias_indicators.flows.checklist import checklist_all
from trias_indicators.flows.emerging import emerging_all
from trias_indicators.flows.preprocess import preprocess_all
from trias_indicators.flows.protected_areas import protected_areas_all


def _add_window_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--as-of",
        dest="as_of",
        type=int,
        default=None,
        help="Last evaluation year (default: last complete year)",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=None,
        help="Number of evaluation years ending at --as-of",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="trias-indicators",
        description="Emerging status and appearing taxa indicators for alien species",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    preprocess_parser = subparsers.add_parser("preprocess", help="Aggregate the cube to yearly series")
    preprocess_parser.add_argument(
        "--exclude",
        type=int,
        nargs="*",
        default=None,
        help="Taxon keys to drop (default: TRIAS_EXCLUDED_TAXA)",
    )

    emerging_parser = subparsers.add_parser("emerging", help="Assess emerging status")
    _add_window_args(emerging_parser)

    appearing_parser = subparsers.add_parser("appearing", help="List appearing and reappearing taxa")
    _add_window_args(appearing_parser)
    appearing_parser.add_argument(
        "--latency",
        type=int,
        default=None,
        help="Years of absence before a reappearance counts",
    )

    areas_parser = subparsers.add_parser("protected-areas", help="Summarize protected areas")
    _add_window_args(areas_parser)

    checklist_parser = subparsers.add_parser("checklist", help="Checklist indicators")
    checklist_parser.add_argument("--as-of", dest="as_of", type=int, default=None)

    all_parser = subparsers.add_parser("all", help="Run every flow")
    _add_window_args(all_parser)
    all_parser.add_argument("--latency", type=int, default=None)

    return parser


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Data directory: {settings.data_dir}")
    print(f"As-of year: {settings.as_of_year}")
    print(f"Latency: {settings.latency}")
    return 0


def cmd_preprocess(args: argparse.Namespace) -> int:
    result = preprocess_all(excluded_taxa=args.exclude)
    print(f"Preprocess: {result}")
    return 0


def cmd_emerging(args: argparse.Namespace) -> int:
    result = emerging_all(as_of_year=args.as_of, window_length=args.window)
    print(f"Emerging status: {result}")
    return 0


def cmd_appearing(args: argparse.Namespace) -> int:
    result = appearing_all(as_of_year=args.as_of, window_length=args.window, latency=args.latency)
    print(f"Appearing taxa: {result}")
    return 1 if "error" in result else 0


def cmd_protected_areas(args: argparse.Namespace) -> int:
    result = protected_areas_all(as_of_year=args.as_of, window_length=args.window)
    print(f"Protected areas: {result}")
    return 1 if "error" in result else 0


def cmd_checklist(args: argparse.Namespace) -> int:
    result = checklist_all(end_year=args.as_of)
    print(f"Checklist: {result}")
    return 1 if "error" in result else 0


def cmd_all(args: argparse.Namespace) -> int:
    """Handle the 'all' command: preprocess, then every indicator flow.

    A flow reporting an error does not stop the others; the exit code is 1
    if any of them did.
    """
    results = {
        "preprocess": preprocess_all(),
        "emerging": emerging_all(as_of_year=args.as_of, window_length=args.window),
        "appearing": appearing_all(as_of_year=args.as_of, latency=args.latency),
        "protected-areas": protected_areas_all(as_of_year=args.as_of, window_length=args.window),
        "checklist": checklist_all(end_year=args.as_of),
    }
    failed = {name: r["error"] for name, r in results.items() if "error" in r}
    for name, error in failed.items():
        print(f"{name} failed: {error}")
    print("Done." if not failed else f"Done with {len(failed)} failed flow(s).")
    return 1 if failed else 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.debug or get_settings().debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "info": cmd_info,
        "preprocess": cmd_preprocess,
        "emerging": cmd_emerging,
        "appearing": cmd_appearing,
        "protected-areas": cmd_protected_areas,
        "checklist": cmd_checklist,
        "all": cmd_all,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
