from __future__ import annotations

from fastapi import APIRouter

from dashcache.services.database import connect_db
from dashcache.services.repository import reseed

router = APIRouter(prefix="/api/demo", tags=["demo"])


@router.post("/reset")
async def reset_demo() -> dict[str, object]:
    conn = await connect_db()
    try:
        counts = await reseed(conn)
        await conn.commit()
    finally:
        await conn.close()

    return {"status": "ok", "seeded": counts}
