"""Derived metrics shared by the cache and the reference backend."""
from __future__ import annotations

from collections import Counter
from typing import Iterable

from dashcache.services.models import (
    Campaign,
    Client,
    Dashboard,
    Employee,
    HRDashboard,
    Hours,
    Task,
    TeamMember,
)

WORKLOAD_PER_OPEN_TASK = 20.0
MAX_WORKLOAD = 100.0
TERMINAL_TASK_STATUSES = frozenset({"done"})
# Cancelled campaigns still count towards campaignsCount but not towards totalBudget.
EXCLUDED_BUDGET_STATUSES = frozenset({"cancelled"})


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def budget_contribution(campaign: Campaign) -> float:
    if campaign.status in EXCLUDED_BUDGET_STATUSES:
        return 0.0
    return campaign.budget


def client_totals(client_id: int, campaigns: Iterable[Campaign]) -> tuple[int, float]:
    """``(campaigns_count, total_budget)`` for one client, from scratch."""
    count = 0
    total = 0.0
    for campaign in campaigns:
        if campaign.client_id != client_id:
            continue
        count += 1
        total += budget_contribution(campaign)
    return count, total


def workload_for(open_tasks: int) -> float:
    return min(MAX_WORKLOAD, WORKLOAD_PER_OPEN_TASK * open_tasks)


def open_task_counts(tasks: Iterable[Task]) -> Counter[int]:
    counts: Counter[int] = Counter()
    for task in tasks:
        if task.assignee_id is None or task.status in TERMINAL_TASK_STATUSES:
            continue
        counts[task.assignee_id] += 1
    return counts


def recalculate_workload(team: list[TeamMember], tasks: Iterable[Task]) -> None:
    """Assign each member a load from their open (non-terminal) tasks, in place."""
    counts = open_task_counts(tasks)
    for member in team:
        member.workload = workload_for(counts.get(member.id, 0))


def compute_dashboard(
    clients: list[Client],
    campaigns: list[Campaign],
    team: list[TeamMember],
) -> Dashboard:
    running = [c for c in campaigns if c.status == "running"]
    rois = [c.roi for c in campaigns if c.status == "completed" and c.roi is not None]
    return Dashboard(
        active_clients=sum(1 for c in clients if c.status == "active"),
        active_campaigns=len(running),
        total_budget=sum(c.budget for c in running),
        total_spent=sum(c.spent for c in running),
        avg_roi=round(_mean(rois), 2),
        team_workload=int(round(_mean([m.workload for m in team]))),
    )


def compute_hr_dashboard(employees: list[Employee], hours: list[Hours]) -> HRDashboard:
    hired = {e.id for e in employees if e.status == "hired"}
    return HRDashboard(
        penalties=sum(e.penalties for e in employees if e.id in hired),
        bonuses=sum(e.bonuses for e in employees if e.id in hired),
        undertime=sum(h.undertime for h in hours if h.employee_id in hired),
    )

