from __future__ import annotations

from typing import Any, Optional

import aiosqlite
from fastapi import APIRouter, HTTPException
from pydantic import Field

from dashcache.services.database import connect_db
from dashcache.services.models import Schema, TaskStatus, utc_now
from dashcache.services.repository import delete_row, exists, get_task, public, update_row

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskCreate(Schema):
    campaign_id: int
    assignee_id: Optional[int] = None
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskStatus = "todo"
    due_date: Optional[str] = None


class TaskUpdate(Schema):
    campaign_id: Optional[int] = None
    assignee_id: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[str] = None


async def _check_refs(conn: aiosqlite.Connection, fields: dict[str, Any]) -> None:
    if fields.get("campaign_id") is not None and not await exists(conn, "campaigns", fields["campaign_id"]):
        raise HTTPException(status_code=400, detail="Campaign not found")
    if fields.get("assignee_id") is not None and not await exists(conn, "team", fields["assignee_id"]):
        raise HTTPException(status_code=400, detail="Team member not found")


@router.post("", status_code=201)
async def create_task(body: TaskCreate) -> dict[str, Any]:
    conn = await connect_db()
    try:
        await _check_refs(conn, body.model_dump())
        now = utc_now()
        cursor = await conn.execute(
            """
            INSERT INTO tasks (campaign_id, assignee_id, title, description, status, due_date,
                               created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                body.campaign_id, body.assignee_id, body.title, body.description,
                body.status, body.due_date, now, now,
            ),
        )
        await conn.commit()
        return public(await get_task(conn, cursor.lastrowid))
    finally:
        await conn.close()


@router.put("/{task_id}")
async def update_task(task_id: int, body: TaskUpdate) -> dict[str, Any]:
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = await connect_db()
    try:
        await _check_refs(conn, fields)
        if not await update_row(conn, "tasks", task_id, fields):
            raise HTTPException(status_code=404, detail="Task not found")
        await conn.commit()
        return public(await get_task(conn, task_id))
    finally:
        await conn.close()


@router.delete("/{task_id}")
async def delete_task(task_id: int) -> dict[str, int]:
    conn = await connect_db()
    try:
        if not await delete_row(conn, "tasks", task_id):
            raise HTTPException(status_code=404, detail="Task not found")
        await conn.commit()
        return {"deletedId": task_id}
    finally:
        await conn.close()
