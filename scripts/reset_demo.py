#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dashcache.services.config import get_settings
from dashcache.services.database import connect_db, init_db
from dashcache.services.repository import reseed


async def _reset() -> dict[str, int]:
    await init_db()
    conn = await connect_db()
    try:
        counts = await reseed(conn)
        await conn.commit()
    finally:
        await conn.close()
    return counts


def main() -> None:
    counts = asyncio.run(_reset())
    print(f"Reset complete: {get_settings().resolved_database_path}")
    print("- SQLite schema ensured")
    for table, count in counts.items():
        print(f"- {count} {table} seeded")


if __name__ == "__main__":
    main()
