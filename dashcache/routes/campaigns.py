from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import Field

from dashcache.services.database import connect_db
from dashcache.services.models import CampaignStatus, Schema, utc_now
from dashcache.services.repository import delete_row, exists, get_campaign, public, update_row

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])


class CampaignCreate(Schema):
    client_id: int
    name: str = Field(min_length=1)
    status: CampaignStatus = "planning"
    budget: float = 0.0
    spent: float = 0.0
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    roi: Optional[float] = None


class CampaignUpdate(Schema):
    client_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1)
    status: Optional[CampaignStatus] = None
    budget: Optional[float] = None
    spent: Optional[float] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    roi: Optional[float] = None


@router.post("", status_code=201)
async def create_campaign(body: CampaignCreate) -> dict[str, Any]:
    conn = await connect_db()
    try:
        if not await exists(conn, "clients", body.client_id):
            raise HTTPException(status_code=400, detail="Client not found")
        now = utc_now()
        cursor = await conn.execute(
            """
            INSERT INTO campaigns (client_id, name, status, budget, spent, start_date, end_date, roi,
                                   created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                body.client_id, body.name, body.status, body.budget, body.spent,
                body.start_date, body.end_date, body.roi, now, now,
            ),
        )
        await conn.commit()
        return public(await get_campaign(conn, cursor.lastrowid))
    finally:
        await conn.close()


@router.put("/{campaign_id}")
async def update_campaign(campaign_id: int, body: CampaignUpdate) -> dict[str, Any]:
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = await connect_db()
    try:
        if "client_id" in fields and not await exists(conn, "clients", fields["client_id"]):
            raise HTTPException(status_code=400, detail="Client not found")
        if not await update_row(conn, "campaigns", campaign_id, fields):
            raise HTTPException(status_code=404, detail="Campaign not found")
        await conn.commit()
        return public(await get_campaign(conn, campaign_id))
    finally:
        await conn.close()


@router.delete("/{campaign_id}")
async def delete_campaign(campaign_id: int) -> dict[str, int]:
    conn = await connect_db()
    try:
        if not await delete_row(conn, "campaigns", campaign_id):
            raise HTTPException(status_code=404, detail="Campaign not found")
        await conn.commit()
        return {"deletedId": campaign_id}
    finally:
        await conn.close()
