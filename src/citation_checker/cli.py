"""Command line interface for checking citations."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List

from .app import CitationCheckerApp
from .config import configure_logging, load_settings
from .report import render_report, result_to_dict


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check APA 7 citations")
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="Text file with citations separated by blank lines ('-' reads stdin)",
    )
    parser.add_argument(
        "--crossref",
        action="store_true",
        help="Query Crossref to correct citation type and complete page ranges",
    )
    parser.add_argument(
        "--json-output",
        type=Path,
        help="Write structured validation results to a JSON file",
    )
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings.log_level)

    text = _read_input(args.input)
    if not text.strip():
        print("No citation text provided.", file=sys.stderr)
        return 2

    checker = CitationCheckerApp(settings=settings)
    if args.crossref:
        results = asyncio.run(checker.validate_many(text, use_enrichment=True))
    else:
        results = checker.validate_many_offline(text)

    print(render_report(results))

    if args.json_output:
        payload = {"results": [result_to_dict(result) for result in results]}
        args.json_output.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())
