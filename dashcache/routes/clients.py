from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import Field

from dashcache.services.database import connect_db
from dashcache.services.models import ClientStatus, Schema, utc_now
from dashcache.services.repository import delete_row, get_client, public, update_row

router = APIRouter(prefix="/api/clients", tags=["clients"])


class ClientCreate(Schema):
    name: str = Field(min_length=1)
    contact: Optional[str] = None
    status: ClientStatus = "prospect"


class ClientUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1)
    contact: Optional[str] = None
    status: Optional[ClientStatus] = None


@router.post("", status_code=201)
async def create_client(body: ClientCreate) -> dict[str, Any]:
    conn = await connect_db()
    try:
        now = utc_now()
        cursor = await conn.execute(
            """
            INSERT INTO clients (name, contact, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (body.name, body.contact, body.status, now, now),
        )
        await conn.commit()
        client = await get_client(conn, cursor.lastrowid)
        return public(client)
    finally:
        await conn.close()


@router.put("/{client_id}")
async def update_client(client_id: int, body: ClientUpdate) -> dict[str, Any]:
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = await connect_db()
    try:
        if not await update_row(conn, "clients", client_id, fields):
            raise HTTPException(status_code=404, detail="Client not found")
        await conn.commit()
        return public(await get_client(conn, client_id))
    finally:
        await conn.close()


@router.delete("/{client_id}")
async def delete_client(client_id: int) -> dict[str, int]:
    conn = await connect_db()
    try:
        if not await delete_row(conn, "clients", client_id):
            raise HTTPException(status_code=404, detail="Client not found")
        await conn.commit()
        return {"deletedId": client_id}
    finally:
        await conn.close()
