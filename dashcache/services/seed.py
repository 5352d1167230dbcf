"""Demo records shown when the backend is unreachable and the cache is empty.

Also used by ``scripts/reset_demo.py`` to populate the reference backend.
"""
from __future__ import annotations

from typing import Any

from dashcache.services.metrics import client_totals, recalculate_workload
from dashcache.services.models import (
    AgencyEnvelope,
    Campaign,
    Client,
    Employee,
    HREnvelope,
    Hours,
    Task,
    TeamMember,
)

SEED_CREATED_AT = "2026-01-15T09:00:00Z"

CLIENTS: list[dict[str, Any]] = [
    {"id": 1, "name": "Northwind Retail", "contact": "ops@northwind.example", "status": "active"},
    {"id": 2, "name": "Bluefin Travel", "contact": "marketing@bluefin.example", "status": "active"},
    {"id": 3, "name": "Copperleaf Studio", "contact": None, "status": "prospect"},
]

CAMPAIGNS: list[dict[str, Any]] = [
    {
        "id": 1, "client_id": 1, "name": "Spring Launch", "status": "running",
        "budget": 12000.0, "spent": 4500.0, "start_date": "2026-03-01", "end_date": "2026-05-31",
    },
    {
        "id": 2, "client_id": 1, "name": "Holiday Promo 2025", "status": "completed",
        "budget": 8000.0, "spent": 7800.0, "start_date": "2025-11-15", "end_date": "2025-12-31",
        "roi": 1.35,
    },
    {
        "id": 3, "client_id": 2, "name": "Summer Escapes", "status": "running",
        "budget": 15000.0, "spent": 2100.0, "start_date": "2026-04-01", "end_date": "2026-08-31",
    },
    {"id": 4, "client_id": 2, "name": "Loyalty Push", "status": "planning", "budget": 5000.0},
]

TASKS: list[dict[str, Any]] = [
    {"id": 1, "campaign_id": 1, "assignee_id": 1, "title": "Draft ad copy", "status": "in_progress"},
    {"id": 2, "campaign_id": 1, "assignee_id": 2, "title": "Build landing page", "status": "todo"},
    {"id": 3, "campaign_id": 3, "assignee_id": 1, "title": "Audience research", "status": "done"},
    {"id": 4, "campaign_id": 3, "assignee_id": 3, "title": "Creative review", "status": "review"},
    {"id": 5, "campaign_id": 4, "assignee_id": None, "title": "Kickoff brief", "status": "todo"},
]

TEAM: list[dict[str, Any]] = [
    {"id": 1, "fullname": "Alice Moreno", "role": "Account Manager"},
    {"id": 2, "fullname": "Ben Ortiz", "role": "Designer"},
    {"id": 3, "fullname": "Chen Wu", "role": "Copywriter"},
]

EMPLOYEES: list[dict[str, Any]] = [
    {"id": 1, "fullname": "John Doe", "status": "hired", "salary": 50000, "penalties": 2, "bonuses": 1,
     "total_penalties": 400, "total_bonuses": 500},
    {"id": 2, "fullname": "Jane Smith", "status": "hired", "salary": 65000, "penalties": 0, "bonuses": 3,
     "total_penalties": 0, "total_bonuses": 1500},
    {"id": 3, "fullname": "Mike Johnson", "status": "fired", "salary": 45000, "penalties": 5, "bonuses": 0,
     "total_penalties": 1000, "total_bonuses": 0},
    {"id": 4, "fullname": "Sarah Williams", "status": "interview", "salary": 55000},
]

HOURS: list[dict[str, Any]] = [
    {"employee_id": 1, "regular_hours": 160, "overtime": 10, "undertime": 2},
    {"employee_id": 2, "regular_hours": 160, "overtime": 5, "undertime": 0},
    {"employee_id": 3, "regular_hours": 120, "overtime": 0, "undertime": 40},
    {"employee_id": 4, "regular_hours": 0, "overtime": 0, "undertime": 0},
]


def agency_seed() -> AgencyEnvelope:
    campaigns = [Campaign(**row) for row in CAMPAIGNS]
    clients = []
    for row in CLIENTS:
        count, total = client_totals(row["id"], campaigns)
        clients.append(Client(**row, campaigns_count=count, total_budget=total))
    tasks = [Task(**row, created_at=SEED_CREATED_AT) for row in TASKS]
    team = [TeamMember(**row) for row in TEAM]
    recalculate_workload(team, tasks)
    return AgencyEnvelope(clients=clients, campaigns=campaigns, tasks=tasks, team=team)


def hr_seed() -> HREnvelope:
    return HREnvelope(
        employees=[Employee(**row) for row in EMPLOYEES],
        hours=[Hours(**row) for row in HOURS],
    )
