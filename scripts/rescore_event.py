#!/usr/bin/env python3
"""
Re-score every lead of an event against its current scoring criteria.

Usage:
    python scripts/rescore_event.py 1
    python scripts/rescore_event.py 1 --json
    python scripts/rescore_event.py 1 --reset-breakers   # close provider circuits first

Requires: OPENAI_API_KEY, DATABASE_URL (defaults to sqlite:///local.db).
Redis is optional — circuit breakers fail open without it.
"""
import sys
import os
import json
import asyncio
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadqual import init_pipeline
from leadqual.pipeline.manager import rescore_event
from leadqual.services.circuit_breaker import CLOSED, get_all_breakers


async def _run(event_id, reset_breakers=False):
    breakers = get_all_breakers()
    if reset_breakers:
        for breaker in breakers.values():
            await breaker.reset()

    result = await rescore_event(event_id)
    health = [await breaker.get_health() for breaker in breakers.values()]
    return result, health


def main():
    parser = argparse.ArgumentParser(description="Re-score all leads of an event")
    parser.add_argument('event_id', type=int, help='Event ID to re-score')
    parser.add_argument('--json', action='store_true', help='Print the summary as JSON')
    parser.add_argument('--reset-breakers', action='store_true',
                        help='Reset provider circuit breakers before scoring')
    args = parser.parse_args()

    init_pipeline()

    result, health = asyncio.run(_run(args.event_id, args.reset_breakers))

    if args.json:
        print(json.dumps({**result.to_dict(), 'providers': health}))
    else:
        print(f"Event {args.event_id}: {result.processed}/{result.total} scored, {result.failed} failed")
        print(f"  high={result.high}  medium={result.medium}  low={result.low}")
        for h in health:
            if h['state'] != CLOSED or h['total_failure']:
                print(f"  {h['name']}: {h['state']} ({h['total_failure']} failures, last: {h['last_error'] or '-'})")

    return 1 if result.failed else 0


if __name__ == '__main__':
    sys.exit(main())
