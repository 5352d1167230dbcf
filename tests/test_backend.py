from __future__ import annotations

from fastapi.testclient import TestClient

from dashcache.main import app


def _client(database) -> TestClient:
    return TestClient(app)


def test_all_data_returns_derived_fields(database) -> None:
    data = _client(database).get("/api/all-data").json()

    assert [c["campaignsCount"] for c in data["clients"]] == [2, 2, 0]
    assert [c["totalBudget"] for c in data["clients"]] == [20000.0, 20000.0, 0.0]
    assert [m["workload"] for m in data["team"]] == [20.0, 20.0, 20.0]
    assert data["dashboard"]["activeCampaigns"] == 2
    assert data["dashboard"]["avgRoi"] == 1.35
    assert "syncStatus" not in data["clients"][0]
    assert data["lastUpdated"]


def test_create_update_delete_client(database) -> None:
    client = _client(database)

    created = client.post("/api/clients", json={"name": "Acme", "status": "prospect"})
    assert created.status_code == 201
    body = created.json()
    assert body["id"] == 4
    assert (body["campaignsCount"], body["totalBudget"]) == (0, 0.0)

    updated = client.put("/api/clients/4", json={"status": "active"})
    assert updated.json()["status"] == "active"
    assert updated.json()["name"] == "Acme"

    assert client.delete("/api/clients/4").json() == {"deletedId": 4}
    assert client.delete("/api/clients/4").status_code == 404


def test_validation_errors(database) -> None:
    client = _client(database)
    assert client.post("/api/clients", json={"name": "Acme", "tier": "gold"}).status_code == 422
    assert client.post("/api/clients", json={"status": "active"}).status_code == 422
    assert client.put("/api/clients/1", json={}).status_code == 400
    assert client.put("/api/clients/99", json={"name": "Ghost"}).status_code == 404
    assert client.post("/api/campaigns", json={"clientId": 99, "name": "Orphan"}).status_code == 400
    assert client.post("/api/tasks", json={"campaignId": 1, "assigneeId": 99, "title": "x"}).status_code == 400


def test_delete_client_cascades_in_database(database) -> None:
    client = _client(database)
    client.delete("/api/clients/1")

    data = client.get("/api/all-data").json()
    assert {c["clientId"] for c in data["campaigns"]} == {2}
    assert [t["id"] for t in data["tasks"]] == [3, 4, 5]


def test_delete_team_member_unassigns_tasks(database) -> None:
    client = _client(database)
    client.delete("/api/team/1")

    tasks = {t["id"]: t for t in client.get("/api/all-data").json()["tasks"]}
    assert tasks[1]["assigneeId"] is None
    assert tasks[3]["assigneeId"] is None


def test_task_and_campaign_routes(database) -> None:
    client = _client(database)

    campaign = client.post(
        "/api/campaigns", json={"clientId": 3, "name": "Pilot", "budget": 900, "status": "running"}
    ).json()
    task = client.post(
        "/api/tasks", json={"campaignId": campaign["id"], "assigneeId": 2, "title": "Brief"}
    ).json()
    assert task["createdAt"]
    assert client.put(f"/api/tasks/{task['id']}", json={"status": "done"}).json()["status"] == "done"

    moved = client.put(f"/api/campaigns/{campaign['id']}", json={"clientId": 2})
    assert moved.json()["clientId"] == 2

    member = client.post("/api/team", json={"fullname": "Dana Lee", "role": "Analyst"}).json()
    assert member["workload"] == 0.0
    assert client.put(f"/api/team/{member['id']}", json={"role": "Lead"}).json()["role"] == "Lead"


def test_demo_reset_restores_seed(database) -> None:
    client = _client(database)
    client.delete("/api/clients/1")

    reset = client.post("/api/demo/reset").json()
    assert reset["seeded"]["clients"] == 3
    assert len(client.get("/api/all-data").json()["clients"]) == 3


def test_health(database) -> None:
    assert _client(database).get("/api/health").json()["status"] == "ok"
