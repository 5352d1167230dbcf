from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import Field

from dashcache.services.database import connect_db
from dashcache.services.models import Schema, utc_now
from dashcache.services.repository import delete_row, get_team_member, public, update_row

router = APIRouter(prefix="/api/team", tags=["team"])


class TeamMemberCreate(Schema):
    fullname: str = Field(min_length=1)
    role: str = Field(min_length=1)


class TeamMemberUpdate(Schema):
    fullname: Optional[str] = Field(default=None, min_length=1)
    role: Optional[str] = Field(default=None, min_length=1)


@router.post("", status_code=201)
async def create_team_member(body: TeamMemberCreate) -> dict[str, Any]:
    conn = await connect_db()
    try:
        now = utc_now()
        cursor = await conn.execute(
            "INSERT INTO team (fullname, role, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (body.fullname, body.role, now, now),
        )
        await conn.commit()
        return public(await get_team_member(conn, cursor.lastrowid))
    finally:
        await conn.close()


@router.put("/{member_id}")
async def update_team_member(member_id: int, body: TeamMemberUpdate) -> dict[str, Any]:
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = await connect_db()
    try:
        if not await update_row(conn, "team", member_id, fields):
            raise HTTPException(status_code=404, detail="Team member not found")
        await conn.commit()
        return public(await get_team_member(conn, member_id))
    finally:
        await conn.close()


@router.delete("/{member_id}")
async def delete_team_member(member_id: int) -> dict[str, int]:
    conn = await connect_db()
    try:
        if not await delete_row(conn, "team", member_id):
            raise HTTPException(status_code=404, detail="Team member not found")
        await conn.commit()
        return {"deletedId": member_id}
    finally:
        await conn.close()
