"""
DocSuggest command-line tool.

Records searches, queries suggestions and administers the term library.

Usage:
    python scripts/suggest_cli.py record "décret ministériel"
    python scripts/suggest_cli.py suggest décret --limit 5 --enhanced
    python scripts/suggest_cli.py inspect --min-frequency 2 --limit 20
    python scripts/suggest_cli.py stats
    python scripts/suggest_cli.py sweep
    python scripts/suggest_cli.py reset-stats
"""
import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from docsuggest.core.config import load_dotenv_if_exists
from docsuggest.service import SuggestionService

logger = logging.getLogger("suggest_cli")


def _print_json(payload):
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def cmd_record(service: SuggestionService, args) -> int:
    for query in args.queries:
        outcome = service.record_search(query, user_id=args.user)
        print(f"{outcome.value:>8}  {query}")
    return 0


def cmd_suggest(service: SuggestionService, args) -> int:
    if args.enhanced:
        response = service.get_enhanced_suggestions(args.query, max_results=args.limit, scope=args.scope)
        _print_json(response.model_dump())
    else:
        for text in service.get_suggestions(args.query, max_results=args.limit, scope=args.scope):
            print(text)
    return 0


def cmd_inspect(service: SuggestionService, args) -> int:
    report = service.inspect_library(min_frequency=args.min_frequency, limit=args.limit)
    if args.json:
        _print_json(report.model_dump())
        return 0

    stats = report.stats
    print(f"Searches: {stats.total_searches}  Terms: {report.total}  "
          f"Updated: {stats.last_updated_at or '-'}")
    print("-" * 60)
    for term in report.terms:
        print(f"{term.frequency:8.1f}  {term.key:<35} {term.last_used_at:%Y-%m-%d}")
    return 0


def cmd_stats(service: SuggestionService, args) -> int:
    for stat in service.search_statistics(limit=args.limit):
        print(f"{stat.count:6d}  {stat.term}")
    return 0


def cmd_sweep(service: SuggestionService, args) -> int:
    removed = service.sweep()
    print(f"Removed {removed} terms")
    return 0


def cmd_reset_stats(service: SuggestionService, args) -> int:
    service.reset_statistics()
    print("Search statistics reset")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DocSuggest query-suggestion tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("record", help="Record one or more searches")
    p.add_argument("queries", nargs="+")
    p.add_argument("--user", default=None, help="Submitting user id")
    p.set_defaults(func=cmd_record)

    p = sub.add_parser("suggest", help="Show suggestions for a partial query")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=None)
    p.add_argument("--scope", default=None, help="Restrict completions to a division")
    p.add_argument("--enhanced", action="store_true", help="Include provenance (JSON)")
    p.set_defaults(func=cmd_suggest)

    p = sub.add_parser("inspect", help="List learned terms")
    p.add_argument("--min-frequency", type=float, default=1.0)
    p.add_argument("--limit", type=int, default=100)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_inspect)

    p = sub.add_parser("stats", help="Per-term search counts")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("sweep", help="Prune rare, stale terms now")
    p.set_defaults(func=cmd_sweep)

    p = sub.add_parser("reset-stats", help="Wipe per-term search counts")
    p.set_defaults(func=cmd_reset_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )

    load_dotenv_if_exists()
    service = SuggestionService.from_settings()
    try:
        return args.func(service, args)
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
