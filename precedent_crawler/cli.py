import argparse
import json
import logging
import os
import sys
from pathlib import Path

from precedent_crawler.coordinator import run
from precedent_crawler.era import parse_gregorian_date
from precedent_crawler.errors import CrawlAborted, EraCalendarError, ListingFetchError

logger = logging.getLogger("precedent_crawler")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="precedent-crawler",
        description="List the precedents published on www.courts.go.jp for a date range as JSON.",
    )
    parser.add_argument("-o", "--output", required=True, help="Path of the JSON file to write.")
    parser.add_argument("-s", "--start", required=True, help="First decision date, yyyy/mm/dd.")
    parser.add_argument("-e", "--end", required=True, help="Last decision date, yyyy/mm/dd.")
    parser.add_argument("-c", "--concurrency", type=int, default=None,
                        help="Detail pages fetched at once (default: PRECEDENT_CONCURRENCY or 8).")
    parser.add_argument("--errors", default=None, help="Also write failed detail pages to this JSON file.")
    parser.add_argument("--log-level", default=os.getenv("PRECEDENT_LOGLEVEL", "INFO"))
    return parser.parse_args(argv)


def write_json(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.write("\n")


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        start = parse_gregorian_date(args.start)
        end = parse_gregorian_date(args.end)
    except EraCalendarError as e:
        print(f"precedent-crawler: {e}", file=sys.stderr)
        return 2
    if start > end:
        print(f"precedent-crawler: start {start} is after end {end}", file=sys.stderr)
        return 2

    try:
        result = run(start, end, args.concurrency, settings={"LOG_LEVEL": args.log_level.upper()})
    except ListingFetchError as e:
        print(f"precedent-crawler: could not retrieve listing page {e.url}: {e.error.message}", file=sys.stderr)
        return 1
    except CrawlAborted as e:
        print(f"precedent-crawler: {e}", file=sys.stderr)
        return 1

    write_json(Path(args.output), result.records_json())
    logger.info("Wrote %d precedents to %s", len(result.records), args.output)
    if args.errors:
        write_json(Path(args.errors), result.errors_json())
        logger.info("Wrote %d failed pages to %s", len(result.errors), args.errors)
    return 0


if __name__ == "__main__":
    sys.exit(main())
