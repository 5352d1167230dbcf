from __future__ import annotations

import asyncio

import httpx

from dashcache.main import app
from dashcache.services.config import Settings
from dashcache.services.data_cache import DataCache
from dashcache.services.models import SyncStatus
from dashcache.services.storage import MemoryStorage
from dashcache.services.transport import ApiClient


def _cache() -> DataCache:
    settings = Settings(api_base_url="http://testserver/api", enable_persistence=False, fetch_retry_attempts=1)
    api = ApiClient(settings.api_base_url, retry_attempts=1, transport=httpx.ASGITransport(app=app))
    return DataCache(settings, api=api, storage=MemoryStorage())


def test_client_lifecycle_against_backend(database) -> None:
    async def scenario() -> None:
        cache = _cache()
        before = await cache.get_dashboard_data()
        assert before.active_clients == 2

        acme = await cache.add_client({"name": "Acme", "status": "prospect"})
        assert acme.id == 4
        assert acme.sync_status == SyncStatus.SYNCED
        stored = next(c for c in await cache.get_clients() if c.id == acme.id)
        assert (stored.campaigns_count, stored.total_budget) == (0, 0.0)
        assert cache.envelope.dashboard.active_clients == 2

        await cache.update_client(acme.id, {"status": "active"})
        assert cache.envelope.dashboard.active_clients == 3

        campaign = await cache.add_campaign(
            {"clientId": acme.id, "name": "Acme Launch", "budget": 1000, "status": "running"}
        )
        assert campaign.id > 0
        stored = next(c for c in cache.envelope.clients if c.id == acme.id)
        assert (stored.campaigns_count, stored.total_budget) == (1, 1000.0)
        assert cache.envelope.dashboard.total_budget == before.total_budget + 1000

        await cache.add_task({"campaignId": campaign.id, "title": "Kickoff", "assigneeId": 3})
        assert next(m for m in cache.envelope.team if m.id == 3).workload == 40.0

        await cache.delete_client(acme.id)
        env = cache.envelope
        assert all(c.client_id != acme.id for c in env.campaigns)
        assert all(t.campaign_id != campaign.id for t in env.tasks)
        assert env.dashboard.active_clients == 2
        assert env.dashboard == before

    asyncio.run(scenario())


def test_team_member_ids_are_reconciled(database) -> None:
    async def scenario() -> None:
        cache = _cache()
        await cache.fetch_all_data()

        member = await cache.add_team_member({"fullname": "Dana Lee", "role": "Analyst"})
        task = await cache.add_task({"campaignId": 1, "title": "Report", "assigneeId": member.id})

        assert member.id == 4
        assert task.assignee_id == 4
        assert all(not r.id < 0 for r in cache.envelope.tasks)

        await cache.delete_team_member(member.id)
        stored = next(t for t in cache.envelope.tasks if t.id == task.id)
        assert stored.assignee_id is None

    asyncio.run(scenario())
