from __future__ import annotations

import pytest
from pydantic import ValidationError

from dashcache.services import metrics
from dashcache.services.models import Campaign, Client, Task, TeamMember, build_record, merge_fields
from dashcache.services.seed import agency_seed, hr_seed


def test_seed_dashboard_figures() -> None:
    env = agency_seed()
    dashboard = metrics.compute_dashboard(env.clients, env.campaigns, env.team)

    assert dashboard.active_clients == 2
    assert dashboard.active_campaigns == 2
    assert dashboard.total_budget == 27000.0
    assert dashboard.total_spent == 6600.0
    assert dashboard.avg_roi == 1.35
    assert dashboard.team_workload == 20


def test_dashboard_is_idempotent() -> None:
    env = agency_seed()
    first = metrics.compute_dashboard(env.clients, env.campaigns, env.team)
    second = metrics.compute_dashboard(env.clients, env.campaigns, env.team)
    assert first == second


def test_empty_collections_give_zero_dashboard() -> None:
    dashboard = metrics.compute_dashboard([], [], [])
    assert dashboard.avg_roi == 0.0
    assert dashboard.team_workload == 0


def test_workload_counts_open_tasks_and_caps() -> None:
    team = [TeamMember(id=1, fullname="Ana", role="PM"), TeamMember(id=2, fullname="Bo", role="Dev")]
    tasks = [Task(id=i, campaign_id=1, assignee_id=1, title=f"t{i}") for i in range(1, 8)]
    tasks.append(Task(id=20, campaign_id=1, assignee_id=2, title="finished", status="done"))

    metrics.recalculate_workload(team, tasks)

    assert team[0].workload == metrics.MAX_WORKLOAD
    assert team[1].workload == 0.0


def test_cancelled_campaign_counts_but_adds_no_budget() -> None:
    campaigns = [
        Campaign(id=1, client_id=7, name="Live", budget=1000.0),
        Campaign(id=2, client_id=7, name="Dropped", budget=400.0, status="cancelled"),
        Campaign(id=3, client_id=8, name="Other", budget=50.0),
    ]
    assert metrics.client_totals(7, campaigns) == (2, 1000.0)


def test_seed_client_counters_match_campaigns() -> None:
    env = agency_seed()
    for client in env.clients:
        assert (client.campaigns_count, client.total_budget) == metrics.client_totals(client.id, env.campaigns)


def test_hr_dashboard_only_counts_hired_employees() -> None:
    env = hr_seed()
    dashboard = metrics.compute_hr_dashboard(env.employees, env.hours)
    assert dashboard.penalties == 2
    assert dashboard.bonuses == 4
    assert dashboard.undertime == 2.0


def test_build_record_accepts_wire_and_attribute_names() -> None:
    campaign = build_record(Campaign, {"clientId": 3, "name": "Launch", "start_date": "2026-05-01"}, id=-1)
    assert campaign.client_id == 3
    assert campaign.start_date == "2026-05-01"
    assert campaign.to_payload()["clientId"] == 3
    assert "id" not in campaign.to_payload()


def test_build_record_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError, match="Unknown field for Client: nickname"):
        build_record(Client, {"name": "Acme", "nickname": "A"}, id=-1)


def test_merge_fields_validates_changes() -> None:
    client = Client(id=1, name="Acme")
    assert merge_fields(client, {"status": "active"}).status == "active"
    with pytest.raises(ValidationError):
        merge_fields(client, {"status": "archived"})
    with pytest.raises(ValidationError):
        merge_fields(client, {"name": "   "})
