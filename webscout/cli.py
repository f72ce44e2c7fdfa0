"""webscout CLI. Invoked as `webscout` when installed with pip install -e ."""

import argparse
import json
import logging
import sys

from webscout._deps import check_required


def _add_client_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-requests", type=int, default=20, metavar="N", help="Total request budget for the run (default: 20)")
    parser.add_argument(
        "--max-domains",
        type=int,
        default=None,
        metavar="N",
        help="Max distinct domains to visit (default: no cap)",
    )
    parser.add_argument("--delay", type=float, default=None, metavar="SECS", help="Min delay between requests (default: 0.6)")
    parser.add_argument("--timeout", type=float, default=None, metavar="SECS", help="Page request timeout (default: 15)")
    parser.add_argument(
        "--search-timeout",
        type=float,
        default=None,
        metavar="SECS",
        help="Search result page timeout (default: 12)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each request and retry to stderr")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webscout",
        description="Fetch pages and search the web politely (robots.txt, budget, backoff).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Fetch one page and print its title and text as JSON")
    fetch.add_argument("url", help="Page URL")
    fetch.add_argument("--type", default="page", help="Label recorded in the trace (default: page)")
    fetch.add_argument("--skip-robots", action="store_true", help="Do not consult robots.txt (use only when you have permission)")
    fetch.add_argument("--html", action="store_true", help="Include raw HTML in the output")
    _add_client_options(fetch)

    search = sub.add_parser("search", help="Search with engine fallback and print results as JSON")
    search.add_argument("query", help="Search query")
    search.add_argument(
        "--engine",
        default="yandex",
        help="Preferred engine: brave, yandex, duckduckgo, bing (default: yandex)",
    )
    search.add_argument("--limit", type=int, default=5, metavar="N", help="Max results (default: 5)")
    _add_client_options(search)
    return parser


def config_from_args(args: argparse.Namespace):
    from webscout.config import ClientConfig

    overrides = {
        "min_delay": args.delay,
        "timeout": args.timeout,
        "search_timeout": args.search_timeout,
    }
    return ClientConfig(
        max_requests=args.max_requests,
        max_visited_domains=args.max_domains,
        **{k: v for k, v in overrides.items() if v is not None},
    )


def run(args: argparse.Namespace) -> dict:
    """Execute the parsed command and return the JSON-ready report."""
    from webscout.client import WebClient

    with WebClient(config_from_args(args)) as client:
        if args.command == "fetch":
            page = client.fetch_page(args.url, type=args.type, skip_robots_check=args.skip_robots)
            data = page.to_dict()
            if not page.blocked and not args.html:
                data.pop("html", None)
            report = {"page": data}
        else:
            results = client.search(args.query, args.engine, args.limit)
            report = {"results": [r.to_dict() for r in results]}
        report["web_stats"] = client.get_stats()
        report["trace"] = client.get_trace()
    return report


def main(argv: list[str] | None = None) -> None:
    check_required()
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        report = run(args)
    except ValueError as e:
        parser.error(str(e))
    json.dump(report, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")

    stats = report["web_stats"]
    for warning in stats["warnings"]:
        print(f"  Warning: {warning}", file=sys.stderr)
    print(
        f"\nDone. {stats['requests_made']} requests, {stats['blocked_count']} blocked, "
        f"{stats['errors_count']} errors in {stats['duration_ms']} ms.",
        file=sys.stderr,
    )
    if "page" in report and report["page"].get("blocked"):
        sys.exit(2)


if __name__ == "__main__":
    main()
