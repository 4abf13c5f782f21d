from dataclasses import asdict
from typing import List

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from branch_graph.api.schemas import (
    InvalidateRequest,
    LayoutBranch,
    LayoutLine,
    LayoutNode,
    LayoutResponse,
    MergeRequest,
)
from branch_graph.api.service import GraphService
from branch_graph.cache.store import JsonFileStore, MemoryStore
from branch_graph.config import load_settings
from branch_graph.dag.models import Graph, MergeEvent
from branch_graph.git.runner import GitRunner
from branch_graph.layout.lanes import GraphConfig

import logging

settings = load_settings()

# Configure Logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Branch Graph API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize Service
store = JsonFileStore(settings.state_file) if settings.state_file else MemoryStore()
service = GraphService(
    GitRunner(settings.repo_path, timeout=settings.git_timeout),
    store=store,
    repo_root=settings.repo_path,
    max_commits=settings.max_commits,
)

@app.get("/api/graph", response_model=Graph)
async def get_graph(refresh: bool = False):
    """Branch graph for the current HEAD (cached unless refresh is set)."""
    return await service.get_graph(force_refresh=refresh)

@app.get("/api/graph/snapshot", response_model=Graph)
async def get_graph_snapshot():
    """Cached graph only, never triggers a rebuild."""
    graph = await service.get_graph_snapshot()
    if graph is None:
        raise HTTPException(status_code=404, detail="No cached graph")
    return graph

@app.delete("/api/graph/cache", status_code=204)
async def clear_graph_cache():
    await service.clear_graph_cache()
    return Response(status_code=204)

@app.post("/api/graph/invalidate", status_code=204)
async def invalidate(req: InvalidateRequest):
    """Hook for commands that changed the repository."""
    if req.merge is not None:
        await _record(req.merge)
    else:
        service.invalidate(req.reason)
    return Response(status_code=204)

@app.post("/api/merges", response_model=MergeEvent)
async def record_merge(req: MergeRequest):
    event = await _record(req)
    if event is None:
        raise HTTPException(status_code=422, detail=f"Branch {req.to_branch} does not resolve to a commit")
    return event

@app.get("/api/merges", response_model=List[MergeEvent])
async def get_merges():
    return await service.get_merge_history()

@app.get("/api/graph/layout", response_model=LayoutResponse)
async def get_layout(refresh: bool = False, expand_at: int = -1, expand_y: float = 0):
    """Lane, colour and line geometry for drawing the graph."""
    layout = await service.get_layout(force_refresh=refresh)
    config = GraphConfig(expand_y=expand_y)
    return LayoutResponse(
        nodes=[LayoutNode(**asdict(p)) for p in layout.vertex_points(config, expand_at)],
        branches=[
            LayoutBranch(colour=b.colour, lines=[LayoutLine(**asdict(line)) for line in b.lines])
            for b in layout.place(config, expand_at)
        ],
        width=layout.content_width(config),
        height=layout.height(config, expand_at),
    )

@app.get("/health")
def health_check():
    return {"status": "ok", "repo": str(service.repo_root)}

async def _record(req: MergeRequest):
    return await service.record_merge(
        req.from_branch,
        req.to_branch,
        req.type,
        commit=req.commit,
        description=req.description,
    )
