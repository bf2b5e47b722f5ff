# main.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from config import Settings, settings
from errors import ItineraryServiceError
from logging_config import setup_logging
from models import GenerationRequest
from request_context import new_request_id
from services.completion_client import CompletionClient
from services.itinerary_generator import ItineraryGenerator
from services.itinerary_store import ItineraryStore

log = logging.getLogger("app")

LOCAL_OWNER = "local-user"


def build_generator(cfg: Settings = settings, store: ItineraryStore | None = None) -> ItineraryGenerator:
    client = CompletionClient(cfg)
    return ItineraryGenerator(client, store or ItineraryStore.in_memory(), cfg)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate one AI travel itinerary and print it as JSON.")
    parser.add_argument("--destination", required=True)
    parser.add_argument("--start", required=True, help="YYYY-MM-DD")
    parser.add_argument("--end", required=True, help="YYYY-MM-DD")
    parser.add_argument("--travelers", type=int, default=1)
    parser.add_argument("--trip-type", default="mid-range", choices=["budget", "mid-range", "luxury"])
    parser.add_argument("--preference", action="append", default=[], dest="preferences")
    parser.add_argument("--budget")
    parser.add_argument("--special-requests")
    parser.add_argument("--model")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    new_request_id()
    try:
        req = GenerationRequest.from_payload({
            "destination": args.destination,
            "startDate": args.start,
            "endDate": args.end,
            "numberOfTravelers": args.travelers,
            "tripType": args.trip_type,
            "preferences": args.preferences,
            "budget": args.budget,
            "specialRequests": args.special_requests,
            "model": args.model,
        })
        generator = build_generator()
        async with generator.client:
            view = await generator.generate(LOCAL_OWNER, req, progress=lambda msg: log.info(msg))
    except ItineraryServiceError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1
    print(json.dumps(view.to_wire(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    setup_logging(settings.log_level)
    log.info("Itinerary generator starting", extra={
        "environment": settings.APP_ENV,
        "debug_mode": settings.DEBUG,
        "model": settings.OPENROUTER_MODEL,
        "max_retries": settings.COMPLETION_MAX_RETRIES,
    })
    try:
        return asyncio.run(_run(_parse_args(argv)))
    except ValueError as e:
        # Missing API key and similar configuration faults
        log.error("Configuration error: %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
