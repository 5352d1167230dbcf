from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from dashcache.services.database import connect_db
from dashcache.services.repository import load_snapshot

router = APIRouter(prefix="/api", tags=["snapshot"])


@router.get("/all-data")
async def get_all_data() -> dict[str, Any]:
    conn = await connect_db()
    try:
        snapshot = await load_snapshot(conn)
    finally:
        await conn.close()
    payload = snapshot.to_wire()
    for name in ("clients", "campaigns", "tasks", "team"):
        for record in payload[name]:
            record.pop("syncStatus", None)
    return payload
