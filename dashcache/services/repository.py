"""Row loading for the reference backend.

Derived values (client counters, team workload, dashboard) are computed with
the same functions the client-side cache uses, so a refresh never disagrees
with an optimistic update.
"""
from __future__ import annotations

from typing import Any, Optional

import aiosqlite

from dashcache.services import metrics, seed
from dashcache.services.database import fetchall, fetchone
from dashcache.services.models import AgencyEnvelope, Campaign, Client, Record, Task, TeamMember, utc_now

CLIENT_COLUMNS = "id, name, contact, status"
CAMPAIGN_COLUMNS = "id, client_id, name, status, budget, spent, start_date, end_date, roi"
TASK_COLUMNS = "id, campaign_id, assignee_id, title, description, status, due_date, created_at"
TEAM_COLUMNS = "id, fullname, role"


def public(record: Record) -> dict[str, Any]:
    return record.model_dump(by_alias=True, mode="json", exclude={"sync_status"})


async def load_campaigns(conn: aiosqlite.Connection) -> list[Campaign]:
    rows = await fetchall(conn, f"SELECT {CAMPAIGN_COLUMNS} FROM campaigns ORDER BY id")
    return [Campaign.model_validate(dict(row)) for row in rows]


async def load_clients(conn: aiosqlite.Connection, campaigns: Optional[list[Campaign]] = None) -> list[Client]:
    if campaigns is None:
        campaigns = await load_campaigns(conn)
    rows = await fetchall(conn, f"SELECT {CLIENT_COLUMNS} FROM clients ORDER BY id")
    clients = []
    for row in rows:
        count, total = metrics.client_totals(row["id"], campaigns)
        clients.append(Client.model_validate({**dict(row), "campaigns_count": count, "total_budget": total}))
    return clients


async def load_tasks(conn: aiosqlite.Connection) -> list[Task]:
    rows = await fetchall(conn, f"SELECT {TASK_COLUMNS} FROM tasks ORDER BY id")
    return [Task.model_validate(dict(row)) for row in rows]


async def load_team(conn: aiosqlite.Connection, tasks: Optional[list[Task]] = None) -> list[TeamMember]:
    if tasks is None:
        tasks = await load_tasks(conn)
    rows = await fetchall(conn, f"SELECT {TEAM_COLUMNS} FROM team ORDER BY id")
    team = [TeamMember.model_validate(dict(row)) for row in rows]
    metrics.recalculate_workload(team, tasks)
    return team


async def load_snapshot(conn: aiosqlite.Connection) -> AgencyEnvelope:
    campaigns = await load_campaigns(conn)
    clients = await load_clients(conn, campaigns)
    tasks = await load_tasks(conn)
    team = await load_team(conn, tasks)

    row = await fetchone(
        conn,
        """
        SELECT MAX(ts) AS ts FROM (
            SELECT MAX(updated_at) AS ts FROM clients
            UNION ALL SELECT MAX(updated_at) FROM campaigns
            UNION ALL SELECT MAX(updated_at) FROM tasks
            UNION ALL SELECT MAX(updated_at) FROM team
        )
        """,
    )
    last_updated = row["ts"] if row is not None and row["ts"] else utc_now()

    return AgencyEnvelope(
        dashboard=metrics.compute_dashboard(clients, campaigns, team),
        clients=clients,
        campaigns=campaigns,
        tasks=tasks,
        team=team,
        last_updated=last_updated,
    )


async def get_client(conn: aiosqlite.Connection, client_id: int) -> Optional[Client]:
    row = await fetchone(conn, f"SELECT {CLIENT_COLUMNS} FROM clients WHERE id = ?", (client_id,))
    if row is None:
        return None
    campaigns = [c for c in await load_campaigns(conn) if c.client_id == client_id]
    count, total = metrics.client_totals(client_id, campaigns)
    return Client.model_validate({**dict(row), "campaigns_count": count, "total_budget": total})


async def get_campaign(conn: aiosqlite.Connection, campaign_id: int) -> Optional[Campaign]:
    row = await fetchone(conn, f"SELECT {CAMPAIGN_COLUMNS} FROM campaigns WHERE id = ?", (campaign_id,))
    return Campaign.model_validate(dict(row)) if row is not None else None


async def get_task(conn: aiosqlite.Connection, task_id: int) -> Optional[Task]:
    row = await fetchone(conn, f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,))
    return Task.model_validate(dict(row)) if row is not None else None


async def get_team_member(conn: aiosqlite.Connection, member_id: int) -> Optional[TeamMember]:
    row = await fetchone(conn, f"SELECT {TEAM_COLUMNS} FROM team WHERE id = ?", (member_id,))
    if row is None:
        return None
    member = TeamMember.model_validate(dict(row))
    metrics.recalculate_workload([member], await load_tasks(conn))
    return member


async def exists(conn: aiosqlite.Connection, table: str, record_id: int) -> bool:
    row = await fetchone(conn, f"SELECT 1 FROM {table} WHERE id = ?", (record_id,))
    return row is not None


async def update_row(conn: aiosqlite.Connection, table: str, record_id: int, fields: dict[str, Any]) -> bool:
    """Apply ``fields`` (column -> value) to one row; False when the row is missing."""
    if not await exists(conn, table, record_id):
        return False
    assignments = ", ".join(f"{column} = ?" for column in fields)
    params = (*fields.values(), utc_now(), record_id)
    await conn.execute(f"UPDATE {table} SET {assignments}, updated_at = ? WHERE id = ?", params)
    return True


async def delete_row(conn: aiosqlite.Connection, table: str, record_id: int) -> bool:
    if not await exists(conn, table, record_id):
        return False
    await conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
    return True


async def reseed(conn: aiosqlite.Connection) -> dict[str, int]:
    """Drop every row and load the demo records; returns row counts per table."""
    now = utc_now()
    for table in ("tasks", "campaigns", "team", "clients"):
        await conn.execute(f"DELETE FROM {table}")
    await conn.execute("DELETE FROM sqlite_sequence")

    await conn.executemany(
        "INSERT INTO clients (id, name, contact, status, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
        [(c["id"], c["name"], c["contact"], c["status"], now, now) for c in seed.CLIENTS],
    )
    await conn.executemany(
        """
        INSERT INTO campaigns (id, client_id, name, status, budget, spent, start_date, end_date, roi,
                               created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                c["id"], c["client_id"], c["name"], c["status"], c.get("budget", 0.0), c.get("spent", 0.0),
                c.get("start_date"), c.get("end_date"), c.get("roi"), now, now,
            )
            for c in seed.CAMPAIGNS
        ],
    )
    await conn.executemany(
        "INSERT INTO team (id, fullname, role, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
        [(m["id"], m["fullname"], m["role"], now, now) for m in seed.TEAM],
    )
    await conn.executemany(
        """
        INSERT INTO tasks (id, campaign_id, assignee_id, title, description, status, due_date,
                           created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                t["id"], t["campaign_id"], t["assignee_id"], t["title"], t.get("description"),
                t["status"], t.get("due_date"), seed.SEED_CREATED_AT, now,
            )
            for t in seed.TASKS
        ],
    )
    return {
        "clients": len(seed.CLIENTS),
        "campaigns": len(seed.CAMPAIGNS),
        "tasks": len(seed.TASKS),
        "team": len(seed.TEAM),
    }
