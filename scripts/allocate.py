"""Standalone allocation script.

Validates a JSON allocation request, runs the allocator and prints the
result. No database is touched.

Usage:
    python -m scripts.allocate request.json
    python -m scripts.allocate --json request.json
    cat request.json | python -m scripts.allocate -

Exit codes: 0 success, 1 invalid input, 2 infeasible request.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from src.engine.allocator import AllocationResult, allocate
from src.engine.errors import InfeasibleError, InvalidInputError
from src.engine.request_validator import validate_allocation_request

EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_INFEASIBLE = 2


def _load_payload(source: str) -> object:
    if source == "-":
        return json.load(sys.stdin)
    return json.loads(Path(source).read_text(encoding="utf-8"))


def _bound(value: int | None) -> str:
    return "-" if value is None else str(value)


def _print_table(total_minutes: int, results: list[AllocationResult]) -> None:
    """Print per-task allocation table."""
    w = 64
    print("=" * w)
    print(f"  Allocation of {total_minutes} minutes across {len(results)} task(s)")
    print("=" * w)
    print(
        f"  {'Task':<20} {'Ratio':>8} {'Min':>6} {'Max':>6}"
        f" {'Minutes':>8} {'Share':>8}"
    )
    print(
        f"  {'--------------------':<20} {'--------':>8} {'------':>6} {'------':>6}"
        f" {'--------':>8} {'--------':>8}"
    )
    for r in results:
        share = r.allocated_minutes / total_minutes
        print(
            f"  {r.task_id[:20]:<20} {r.ratio:>8.3f} {_bound(r.min_minutes):>6}"
            f" {_bound(r.max_minutes):>6} {r.allocated_minutes:>8} {share:>8.1%}"
        )
    print("=" * w)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Split total_minutes across tasks by ratio within min/max bounds.",
    )
    parser.add_argument("request", help="Path to a JSON request file, or '-' for stdin.")
    parser.add_argument(
        "--json", action="store_true", dest="as_json",
        help="Print the allocations as JSON instead of a table.",
    )
    args = parser.parse_args(argv)

    try:
        payload = _load_payload(args.request)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"ERROR: cannot read request: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    try:
        request = validate_allocation_request(payload)
        results = allocate(request)
    except InvalidInputError as exc:
        print(f"INVALID INPUT: {exc.message}", file=sys.stderr)
        for v in exc.violations:
            print(f"  {v.field}: {v.message}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except InfeasibleError as exc:
        print(f"INFEASIBLE ({exc.check.value}): {exc.message}", file=sys.stderr)
        return EXIT_INFEASIBLE

    if args.as_json:
        print(json.dumps([r.as_dict() for r in results], indent=2))
    else:
        _print_table(request.total_minutes, results)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
