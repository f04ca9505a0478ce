from __future__ import annotations

import argparse
import asyncio
import json
import sys

from isocert.core.bootstrap import open_search_service
from isocert.core.config import get_settings
from isocert.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from isocert.schemas.certifications import SearchResponse


async def run_search(company_name: str) -> SearchResponse:
    settings = get_settings()
    telemetry_runtime = setup_telemetry(settings)
    try:
        async with open_search_service(settings) as service:
            return await service.search(company_name)
    finally:
        shutdown_telemetry(telemetry_runtime)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="isocert", description="Look up ISO certifications for a company.")
    subcommands = parser.add_subparsers(dest="command", required=True)
    search = subcommands.add_parser("search", help="Search certifications by company name")
    search.add_argument("company_name", help="Company name (substring match)")
    search.add_argument("--indent", type=int, default=2, help="JSON indentation")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    response = asyncio.run(run_search(args.company_name))
    payload = response.model_dump(mode="json", by_alias=True)
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=args.indent) + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
