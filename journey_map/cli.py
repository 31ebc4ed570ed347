"""
Command line tools for inspecting a journey map without running the app.

    journey-map show app/journey                 # compiled graph as JSON
    journey-map show app/journey --step quiz:question-1
    journey-map check app/journey --strict       # broken links and warnings

Exit Codes:
  0 - Success
  1 - Validation failed
  2 - Fatal error (missing or malformed descriptor)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError as SettingsError

from journey_map.config.settings import load_settings
from journey_map.errors import DescriptorError
from journey_map.map.compiler import build_graph
from journey_map.map.types import JourneyGraph
from journey_map.validator.errors import ValidationResult
from journey_map.validator.links import validate_graph

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILED = 1
EXIT_FATAL_ERROR = 2


def _print_findings(result: ValidationResult, strict: bool) -> None:
    for error in result.sorted_errors():
        print(error.format("FAIL"), file=sys.stderr)
    level = "FAIL" if strict else "WARN"
    for warning in result.sorted_warnings():
        print(warning.format(level), file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="journey-map",
        description="Inspect and check journey map descriptors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0 - Success
  1 - Validation failed
  2 - Fatal error (missing or malformed descriptor)
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Print the compiled journey graph as JSON")
    show.add_argument("base_path", nargs="?", help="Directory holding map.yml")
    show.add_argument("--step", help="Only print this step id")

    check = subparsers.add_parser("check", help="Report broken and suspect links")
    check.add_argument("base_path", nargs="?", help="Directory holding map.yml")
    check.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    check.add_argument("--strict", action="store_true", help="Treat warnings as errors")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            base_path=args.base_path,
            log_level="DEBUG" if args.debug else None,
        )
    except SettingsError as e:
        print(f"ERROR: Invalid settings: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL_ERROR)

    logging.basicConfig(level=settings.log_level)

    if settings.base_path is None:
        print("ERROR: No base path given (pass BASE_PATH or set JOURNEY_MAP_BASE_PATH)", file=sys.stderr)
        sys.exit(EXIT_FATAL_ERROR)

    try:
        graph = JourneyGraph(build_graph(settings.base_path))
    except DescriptorError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL_ERROR)

    if args.command == "show":
        if args.step:
            step = graph.get(args.step)
            if step is None:
                print(f"ERROR: Unknown step '{args.step}'", file=sys.stderr)
                sys.exit(EXIT_VALIDATION_FAILED)
            print(json.dumps(step.to_dict(), indent=2, default=str))
        else:
            print(json.dumps(graph.to_dict(), indent=2, default=str))
        sys.exit(EXIT_SUCCESS)

    result = validate_graph(graph)
    failed = result.has_errors() or (args.strict and result.has_warnings())

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_findings(result, args.strict)
        if failed:
            print(f"\nJourney map check FAILED ({len(result.errors)} errors).", file=sys.stderr)
        else:
            print(f"Journey map OK ({len(graph)} steps, {len(result.warnings)} warnings)")

    sys.exit(EXIT_VALIDATION_FAILED if failed else EXIT_SUCCESS)


if __name__ == "__main__":
    main()
