#!/usr/bin/env python
"""Compare two OpenAPI contracts from the command line."""

import argparse
import json
import sys
from pathlib import Path

from contractdiff import EngineConfig, ErrorResponse, LogLevel, configure_logging, run_diff


def main():
    parser = argparse.ArgumentParser(
        description="Classify the changes between two OpenAPI 3 contracts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_contract_diff.py v1.yaml v2.yaml report.json
  python run_contract_diff.py -o v1.yaml -n v2.yaml -r report.json
  python run_contract_diff.py v1.yaml v2.yaml report.json --ignore '$.info'

Exit codes:
  0  the new contract is backward compatible
  1  the new contract breaks existing clients
  2  the contracts could not be compared
        """
    )

    parser.add_argument("old", nargs="?", help="Path to the baseline contract")
    parser.add_argument("new", nargs="?", help="Path to the new contract")
    parser.add_argument("report", nargs="?", help="Path to output JSON report file")

    # Also support named arguments
    parser.add_argument("-o", "--old", dest="old_named", help="Path to the baseline contract")
    parser.add_argument("-n", "--new", dest="new_named", help="Path to the new contract")
    parser.add_argument("-r", "--report", dest="report_named", help="Path to output report")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress console output")
    parser.add_argument(
        "-i", "--ignore",
        action="append",
        default=[],
        metavar="JSONPATH",
        help="JSONPath of document content to drop before comparing (repeatable)"
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=LogLevel.WARN.value,
        help="Minimum log level"
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit log lines as JSON")

    args = parser.parse_args()

    old_path = args.old or args.old_named
    new_path = args.new or args.new_named
    report_path = args.report or args.report_named

    if not old_path:
        parser.error("Old contract path is required")
    if not new_path:
        parser.error("New contract path is required")

    config = EngineConfig(global_ignores=args.ignore, log_level=LogLevel(args.log_level))
    configure_logging(config.log_level, json_output=args.json_logs)

    for path in (old_path, new_path):
        if not Path(path).exists():
            print(f"Error: Contract file not found: {path}", file=sys.stderr)
            return 2

    if not args.quiet:
        print(f"Old: {old_path}")
        print(f"New: {new_path}")
        if report_path:
            print(f"Report: {report_path}")

    try:
        result = run_diff(old_path, new_path, config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if isinstance(result, ErrorResponse):
        print(f"Error: {result.error['code']}: {result.error['message']}", file=sys.stderr)
        if report_path:
            with open(report_path, 'w') as f:
                json.dump(result.to_dict(), indent=2, fp=f)
        return 2

    if report_path:
        with open(report_path, 'w') as f:
            json.dump(result.to_dict(), indent=2, fp=f)

    if not args.quiet:
        result.print_summary()
        if report_path:
            print(f"\nReport saved to: {report_path}")

    return 0 if result.severity().is_compatible() else 1


if __name__ == "__main__":
    sys.exit(main())
