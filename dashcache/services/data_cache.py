from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from dashcache.services.base_cache import BaseDataCache, find_record, replace_record
from dashcache.services import metrics
from dashcache.services.models import (
    AgencyEnvelope,
    Campaign,
    Client,
    Dashboard,
    SyncStatus,
    Task,
    TeamMember,
    build_record,
    field_name,
    merge_fields,
)
from dashcache.services.seed import agency_seed

logger = logging.getLogger(__name__)


def _without_id(changes: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in changes.items() if k != "id"}


def _client_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    # campaignsCount and totalBudget follow the campaigns, never the caller.
    derived = {"total_budget", "campaigns_count"}
    return {k: v for k, v in _without_id(changes).items() if field_name(Client, k) not in derived}


def _money(value: float) -> float:
    return round(value, 2)


class DataCache(BaseDataCache[AgencyEnvelope]):
    """Agency dashboard cache: clients, campaigns, tasks and team members.

    Mutations are applied locally first (optimistic), then pushed to the
    backend. A failed push raises ``TransportError`` but never rolls the local
    change back; the affected record is left with ``sync_status == "failed"``.
    """

    envelope_model = AgencyEnvelope
    primary_collection = "clients"
    collections = ("clients", "campaigns", "tasks", "team")
    default_storage_key = "agency_data_cache_v1"
    identifier_refs = {
        Client: (("clients", "id"), ("campaigns", "client_id")),
        Campaign: (("campaigns", "id"), ("tasks", "campaign_id")),
        Task: (("tasks", "id"),),
        TeamMember: (("team", "id"), ("tasks", "assignee_id")),
    }

    # --- derived data ---

    def compute_dashboard(self) -> None:
        env = self.envelope
        env.dashboard = metrics.compute_dashboard(env.clients, env.campaigns, env.team)

    def recalculate_workload(self) -> None:
        metrics.recalculate_workload(self.envelope.team, self.envelope.tasks)

    def _recompute(self) -> None:
        self.recalculate_workload()
        self.compute_dashboard()

    def _after_reconcile(self) -> None:
        # Unconfirmed local campaigns survive a refresh, so the server's
        # counters are rebuilt against the merged collection.
        for client in self.envelope.clients:
            count, total = metrics.client_totals(client.id, self.envelope.campaigns)
            client.campaigns_count = count
            client.total_budget = _money(total)

    def _seed(self) -> AgencyEnvelope:
        return agency_seed()

    # --- reads ---

    async def get_dashboard_data(self) -> Dashboard:
        await self.fetch_all_data()
        if self.envelope.dashboard is None:
            self.compute_dashboard()
        return self.envelope.dashboard

    async def get_clients(self) -> list[Client]:
        await self.fetch_all_data()
        return self.envelope.clients

    async def get_campaigns(self, client_id: Optional[int] = None) -> list[Campaign]:
        await self.fetch_all_data()
        if client_id is None:
            return self.envelope.campaigns
        return [c for c in self.envelope.campaigns if c.client_id == client_id]

    async def get_tasks(self, campaign_id: Optional[int] = None) -> list[Task]:
        await self.fetch_all_data()
        if campaign_id is None:
            return self.envelope.tasks
        return [t for t in self.envelope.tasks if t.campaign_id == campaign_id]

    async def get_team(self) -> list[TeamMember]:
        await self.fetch_all_data()
        return self.envelope.team

    # --- clients ---

    async def add_client(self, data: Mapping[str, Any]) -> Client:
        async with self._lock:
            client = build_record(
                Client,
                _without_id(data),
                id=self._next_temp_id(),
                total_budget=0.0,
                campaigns_count=0,
                sync_status=SyncStatus.PENDING,
            )
            self.envelope.clients.append(client)
            self._commit()
        await self._sync_create(client, "/clients")
        return client

    async def update_client(self, client_id: int, changes: Mapping[str, Any]) -> Client:
        async with self._lock:
            current = self._require("clients", client_id, "Client")
            updated = merge_fields(current, _client_changes(changes))
            resend = self._stage(current, updated)
            self.envelope.clients = replace_record(self.envelope.clients, updated)
            self._commit()
        await self._sync_update(updated, f"/clients/{client_id}", resend)
        return updated

    async def delete_client(self, client_id: int, refresh: bool = True) -> None:
        async with self._lock:
            self._require("clients", client_id, "Client")
            env = self.envelope
            campaign_ids = {c.id for c in env.campaigns if c.client_id == client_id}
            clients = [c for c in env.clients if c.id != client_id]
            campaigns = [c for c in env.campaigns if c.id not in campaign_ids]
            tasks = [t for t in env.tasks if t.campaign_id not in campaign_ids]
            self.envelope = env.model_copy(update={"clients": clients, "campaigns": campaigns, "tasks": tasks})
            self._commit()
        logger.info(
            "Deleted client %s with %d campaigns and %d tasks",
            client_id,
            len(env.campaigns) - len(campaigns),
            len(env.tasks) - len(tasks),
        )
        # The backend cascades the same way, so only the client is deleted remotely.
        await self._sync_delete(client_id, f"/clients/{client_id}", refresh)

    # --- campaigns ---

    async def add_campaign(self, data: Mapping[str, Any]) -> Campaign:
        async with self._lock:
            campaign = build_record(
                Campaign,
                _without_id(data),
                id=self._next_temp_id(),
                sync_status=SyncStatus.PENDING,
            )
            client = self._require("clients", campaign.client_id, "Client")
            self.envelope.campaigns.append(campaign)
            client.campaigns_count += 1
            client.total_budget = _money(client.total_budget + metrics.budget_contribution(campaign))
            self._commit()
        await self._sync_create(campaign, "/campaigns")
        return campaign

    async def update_campaign(self, campaign_id: int, changes: Mapping[str, Any]) -> Campaign:
        async with self._lock:
            current = self._require("campaigns", campaign_id, "Campaign")
            updated = merge_fields(current, _without_id(changes))
            new_client = self._require("clients", updated.client_id, "Client")
            old_client = find_record(self.envelope.clients, current.client_id)
            resend = self._stage(current, updated)

            if old_client is not None:
                old_client.campaigns_count -= 1
                old_client.total_budget = _money(old_client.total_budget - metrics.budget_contribution(current))
            new_client.campaigns_count += 1
            new_client.total_budget = _money(new_client.total_budget + metrics.budget_contribution(updated))

            self.envelope.campaigns = replace_record(self.envelope.campaigns, updated)
            self._commit()
        await self._sync_update(updated, f"/campaigns/{campaign_id}", resend)
        return updated

    async def delete_campaign(self, campaign_id: int, refresh: bool = True) -> None:
        async with self._lock:
            campaign = self._require("campaigns", campaign_id, "Campaign")
            env = self.envelope
            clients = env.clients
            client = find_record(env.clients, campaign.client_id)
            if client is not None:
                client = client.model_copy(
                    update={
                        "campaigns_count": client.campaigns_count - 1,
                        "total_budget": _money(client.total_budget - metrics.budget_contribution(campaign)),
                    }
                )
                clients = replace_record(env.clients, client)
            campaigns = [c for c in env.campaigns if c.id != campaign_id]
            tasks = [t for t in env.tasks if t.campaign_id != campaign_id]
            self.envelope = env.model_copy(update={"clients": clients, "campaigns": campaigns, "tasks": tasks})
            self._commit()
        await self._sync_delete(campaign_id, f"/campaigns/{campaign_id}", refresh)

    # --- tasks ---

    def _check_task_refs(self, task: Task) -> None:
        self._require("campaigns", task.campaign_id, "Campaign")
        if task.assignee_id is not None:
            self._require("team", task.assignee_id, "Team member")

    async def add_task(self, data: Mapping[str, Any]) -> Task:
        async with self._lock:
            task = build_record(
                Task,
                _without_id(data),
                id=self._next_temp_id(),
                created_at=self._now_iso(),
                sync_status=SyncStatus.PENDING,
            )
            self._check_task_refs(task)
            self.envelope.tasks.append(task)
            self._commit()
        await self._sync_create(task, "/tasks")
        return task

    async def update_task(self, task_id: int, changes: Mapping[str, Any]) -> Task:
        async with self._lock:
            current = self._require("tasks", task_id, "Task")
            updated = merge_fields(current, _without_id(changes))
            self._check_task_refs(updated)
            resend = self._stage(current, updated)
            self.envelope.tasks = replace_record(self.envelope.tasks, updated)
            self._commit()
        await self._sync_update(updated, f"/tasks/{task_id}", resend)
        return updated

    async def delete_task(self, task_id: int, refresh: bool = True) -> None:
        async with self._lock:
            self._require("tasks", task_id, "Task")
            self.envelope.tasks = [t for t in self.envelope.tasks if t.id != task_id]
            self._commit()
        await self._sync_delete(task_id, f"/tasks/{task_id}", refresh)

    # --- team ---

    async def add_team_member(self, data: Mapping[str, Any]) -> TeamMember:
        async with self._lock:
            member = build_record(
                TeamMember,
                _without_id(data),
                id=self._next_temp_id(),
                workload=0.0,
                sync_status=SyncStatus.PENDING,
            )
            self.envelope.team.append(member)
            self._commit()
        await self._sync_create(member, "/team")
        return member

    async def update_team_member(self, member_id: int, changes: Mapping[str, Any]) -> TeamMember:
        async with self._lock:
            current = self._require("team", member_id, "Team member")
            updated = merge_fields(current, _without_id(changes))
            resend = self._stage(current, updated)
            self.envelope.team = replace_record(self.envelope.team, updated)
            # workload is derived from tasks; a value passed in is overwritten here
            self._commit()
        await self._sync_update(updated, f"/team/{member_id}", resend)
        return updated

    async def delete_team_member(self, member_id: int, refresh: bool = True) -> None:
        async with self._lock:
            self._require("team", member_id, "Team member")
            env = self.envelope
            team = [m for m in env.team if m.id != member_id]
            # Tasks stay with their campaign and become unassigned.
            tasks = [
                t.model_copy(update={"assignee_id": None}) if t.assignee_id == member_id else t
                for t in env.tasks
            ]
            self.envelope = env.model_copy(update={"team": team, "tasks": tasks})
            self._commit()
        await self._sync_delete(member_id, f"/team/{member_id}", refresh)
