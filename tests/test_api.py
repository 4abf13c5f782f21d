import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import branch_graph.api.main as main
from branch_graph.api.main import app
from branch_graph.api.service import GraphService
from branch_graph.cache.store import MemoryStore
from branch_graph.dag.parser import full_log_args

from conftest import log_line, log_text

HISTORY = log_text(
    log_line("m", ["c2", "f1"], ["HEAD -> refs/heads/main"], seconds=4000),
    log_line("f1", ["c1"], ["refs/heads/feature"], seconds=3000),
    log_line("c2", ["c1"], ["refs/heads/main"], seconds=2000),
    log_line("c1", [], [], seconds=1000),
)

# Fixture for async client
@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

# Point the global service at a scripted repository
@pytest.fixture(autouse=True)
def service(monkeypatch, fake_git):
    fake_git.set("rev-parse", "HEAD", output="m\n")
    fake_git.set("rev-parse", "main", output="m\n")
    fake_git.set(*full_log_args(800), output=HISTORY)
    fake_git.set("branch", "--all", "--no-color", output="  feature\n* main\n  remotes/origin/main\n")
    test_service = GraphService(fake_git, store=MemoryStore())
    monkeypatch.setattr(main, "service", test_service)
    return test_service

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

@pytest.mark.asyncio
async def test_get_graph(client):
    response = await client.get("/api/graph")
    assert response.status_code == 200
    data = response.json()
    assert data["branches"] == ["feature", "main"]
    assert data["current_branch"] == "main"
    assert [n["hash"] for n in data["dag"]["nodes"]] == ["m", "f1", "c2", "c1"]
    assert len(data["dag"]["links"]) == 4
    assert data["merges"][0]["from"] == "feature"
    assert data["merges"][0]["to"] == "main"
    assert data["merges"][0]["type"] == "three-way"

@pytest.mark.asyncio
async def test_refresh_rebuilds(client, fake_git):
    await client.get("/api/graph")
    await client.get("/api/graph")
    await client.get("/api/graph", params={"refresh": "true"})
    assert fake_git.count("log") == 2

@pytest.mark.asyncio
async def test_snapshot_404_until_built(client):
    response = await client.get("/api/graph/snapshot")
    assert response.status_code == 404

    await client.get("/api/graph")
    response = await client.get("/api/graph/snapshot")
    assert response.status_code == 200
    assert len(response.json()["dag"]["nodes"]) == 4

@pytest.mark.asyncio
async def test_clear_cache(client):
    await client.get("/api/graph")

    response = await client.delete("/api/graph/cache")

    assert response.status_code == 204
    assert (await client.get("/api/graph/snapshot")).status_code == 404

@pytest.mark.asyncio
async def test_invalidate(client, service):
    await client.get("/api/graph")

    response = await client.post("/api/graph/invalidate", json={"reason": "checkout"})

    assert response.status_code == 204
    assert service.graph_cache_key not in service.memory

@pytest.mark.asyncio
async def test_invalidate_with_merge_records_it(client):
    response = await client.post(
        "/api/graph/invalidate",
        json={"reason": "merge", "merge": {"from": "feature", "to": "main", "type": "fast-forward"}},
    )
    assert response.status_code == 204

    history = (await client.get("/api/merges")).json()
    assert [(e["from"], e["to"], e["commit"], e["type"]) for e in history] == [
        ("feature", "main", "m", "fast-forward"),
    ]

@pytest.mark.asyncio
async def test_record_merge(client):
    response = await client.post("/api/merges", json={"from": "feature", "to": "main"})

    assert response.status_code == 200
    event = response.json()
    assert event["commit"] == "m"
    assert event["type"] == "three-way"
    assert event["description"] == "Three-way merge: feature → main"
    assert event["id"]

@pytest.mark.asyncio
async def test_record_merge_unknown_target(client):
    response = await client.post("/api/merges", json={"from": "feature", "to": "nowhere"})
    assert response.status_code == 422

@pytest.mark.asyncio
async def test_record_merge_rejects_unknown_type(client):
    response = await client.post("/api/merges", json={"from": "feature", "to": "main", "type": "octopus"})
    assert response.status_code == 422

@pytest.mark.asyncio
async def test_layout(client):
    response = await client.get("/api/graph/layout")
    assert response.status_code == 200
    data = response.json()

    nodes = {n["hash"]: n for n in data["nodes"]}
    assert {h: n["lane"] for h, n in nodes.items()} == {"m": 0, "f1": 1, "c2": 0, "c1": 0}
    assert nodes["m"]["is_current"]
    assert nodes["m"]["is_merge"]
    assert len(data["branches"]) == 2
    assert data["width"] == 32
    assert data["height"] == 96

@pytest.mark.asyncio
async def test_layout_expand(client):
    response = await client.get("/api/graph/layout", params={"expand_at": 0, "expand_y": 40})
    data = response.json()

    assert [n["y"] for n in data["nodes"]] == [12, 76, 100, 124]
    assert data["height"] == 136
