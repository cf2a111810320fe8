"""
Run one query against a Flight SQL time-series server and print the matching records.

Run:
  tsquery --query "SELECT ..." --tag-key cpu --tag-value cpu0 [--limit 20]
  tsquery --check

Connection settings fall back to TSQUERY_URL, TSQUERY_TOKEN and TSQUERY_ORG
(a .env file is honoured).
"""

import argparse
import logging
import sys
from typing import List, Optional

from .client import QueryClient
from .config import ClientConfig
from .errors import TSQueryError
from .log import setup_logging
from .runner import DEFAULT_LIMIT, run_query

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tsquery", description=__doc__.strip().splitlines()[0])
    ap.add_argument("--url", help="Flight SQL endpoint, e.g. grpc://localhost:8181")
    ap.add_argument("--token", help="API token")
    ap.add_argument("--org", help="Organization the query is scoped to")
    ap.add_argument("--query", help="Query text, sent to the server as-is")
    ap.add_argument("--tag-key", help="Column to filter on")
    ap.add_argument("--tag-value", help="Keep records whose --tag-key column equals this")
    ap.add_argument("--limit", type=int, default=DEFAULT_LIMIT,
                    help=f"Print at most this many records (default {DEFAULT_LIMIT})")
    ap.add_argument("--check", action="store_true", help="Only check that the server is healthy")
    ap.add_argument("--log-level", default="INFO", choices=LOG_LEVELS)
    ap.add_argument("--log-file", help="Also write a debug log to this file")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    config = ClientConfig.from_env()
    url = args.url or config.url
    token = args.token or config.token
    org = args.org or config.org

    if args.check:
        healthy = QueryClient(url, token, org=org, config=config).ping()
        logger.info(f"{url} is {'healthy' if healthy else 'unreachable'}")
        return 0 if healthy else 1

    missing = [name for name in ("query", "tag_key", "tag_value") if getattr(args, name) is None]
    if missing:
        ap.error("missing " + ", ".join("--" + name.replace("_", "-") for name in missing))
    if args.limit < 0:
        ap.error("--limit must not be negative")

    try:
        count = run_query(url, token, args.query, org,
                          tag_key=args.tag_key, tag_value=args.tag_value,
                          limit=args.limit, config=config)
    except TSQueryError as e:
        logger.error(f"Query run failed: {e}")
        return 1

    logger.info(f"Printed {count} records")
    return 0


if __name__ == "__main__":
    sys.exit(main())
