#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dashcache.services.data_cache import DataCache
from dashcache.services.hr_cache import HRDataCache
from dashcache.services.notifications import Notifier

CACHES = {"agency": DataCache, "hr": HRDataCache}


async def _run(variant: str, force: bool, show_all: bool) -> None:
    cache = CACHES[variant]()
    notifier = Notifier()
    notifier.bind(cache.events)

    envelope = await cache.fetch_all_data(force_refresh=force)
    notice = notifier.current()
    if notice is not None:
        print(f"[{notice.level}] {notice.message}", file=sys.stderr)

    payload = envelope.to_wire() if show_all else {"dashboard": envelope.to_wire()["dashboard"]}
    payload["lastUpdated"] = envelope.last_updated
    print(json.dumps(payload, indent=2))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print the cached dashboard snapshot")
    parser.add_argument("variant", nargs="?", choices=sorted(CACHES), default="agency")
    parser.add_argument("--force", action="store_true", help="Ignore the TTL and refetch")
    parser.add_argument("--all", dest="show_all", action="store_true", help="Print every collection")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_run(args.variant, args.force, args.show_all))


if __name__ == "__main__":
    main()
