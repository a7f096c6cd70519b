#!/usr/bin/env python3
"""Run one Explore search against the live providers from a terminal."""
import argparse
import dataclasses
import json
import os
import sys
import time
from typing import Any, Dict


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search external media catalogs the way /api/explore does.")
    parser.add_argument("query", help="Search text (at least 2 characters).")
    parser.add_argument(
        "--type",
        dest="category",
        default="anime",
        help="anime, movie, series, manga, book or light_novel."
    )
    parser.add_argument("--timeout", type=float, default=None, help="Fan-out deadline in seconds.")
    parser.add_argument("--limit", type=int, default=None, help="Records requested per provider.")
    parser.add_argument("--json", action="store_true", help="Print results as JSON.")
    parser.add_argument("--outcomes", action="store_true", help="Also print per-provider outcomes.")
    parser.add_argument("--output", default="", help="Write a JSON report to this path.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    from kars_app.explore.config import ExploreSettings  # pylint: disable=import-outside-toplevel
    from kars_app.explore.errors import InvalidInput  # pylint: disable=import-outside-toplevel
    from kars_app.explore.models import ExploreQuery  # pylint: disable=import-outside-toplevel
    from kars_app.explore.service import ExploreService  # pylint: disable=import-outside-toplevel

    try:
        query = ExploreQuery.parse(args.query, args.category)
    except InvalidInput as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    settings = ExploreSettings.from_env()
    overrides: Dict[str, Any] = {}
    if args.timeout:
        overrides["timeout"] = args.timeout
    if args.limit:
        overrides["provider_limit"] = args.limit
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    service = ExploreService(settings)
    report = service.run_sync(query)

    if args.json:
        print(json.dumps([result.to_dict() for result in report.results], indent=2, ensure_ascii=False))
    else:
        print(f"{len(report.results)} results for '{query.text}' ({query.category.value}) in {report.duration_ms}ms")
        for index, result in enumerate(report.results, start=1):
            print(result.display_line(index))

    if args.outcomes:
        print()
        for outcome in report.outcomes:
            status = "ok" if outcome.ok else outcome.error.kind
            print(f"  {outcome.source.value:<12} {status:<20} {len(outcome.results or []):>3} records  {outcome.elapsed_ms}ms")

    if args.output:
        payload: Dict[str, Any] = {
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "query": query.text,
            "category": query.category.value,
            "duration_ms": report.duration_ms,
            "skipped_records": report.skipped_records,
            "outcomes": [outcome.to_dict() for outcome in report.outcomes],
            "results": [result.to_dict() for result in report.results],
        }
        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
