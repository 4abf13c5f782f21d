import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from branch_graph.cache.durable import GraphSnapshotCache, repo_storage_id
from branch_graph.cache.memory import MemoryCache, now_ms
from branch_graph.cache.store import KeyValueStore, MemoryStore
from branch_graph.config import BRANCHES_TTL_MS, GRAPH_TTL_MS, MAX_COMMITS
from branch_graph.dag.builder import build_graph
from branch_graph.dag.incremental import IncrementalUpdater
from branch_graph.dag.limit import enforce_commit_limit
from branch_graph.dag.merge_history import MergeHistory
from branch_graph.dag.models import BranchSummary, Graph, MergeEvent, MergeType
from branch_graph.dag.parser import full_log_args, parse_log
from branch_graph.dag.refs import get_branches, resolve_head, resolve_ref
from branch_graph.git.runner import GitCommandError, GitRunner
from branch_graph.layout.lanes import LaneLayout

logger = logging.getLogger(__name__)

GRAPH_CACHE_PREFIX = "branchGraph"
BRANCHES_CACHE_PREFIX = "branches"


class GraphService:
    """Serves the branch graph of one repository.

    Lookups go memory cache -> stored snapshot for HEAD -> incremental
    extension of an older snapshot -> full `git log` scan. Rebuilds for the
    repository are serialised so overlapping requests share one result.
    """

    def __init__(
        self,
        git: GitRunner,
        store: Optional[KeyValueStore] = None,
        repo_root: Optional[Path] = None,
        max_commits: int = MAX_COMMITS,
        clock: Callable[[], int] = now_ms,
    ):
        self.git = git
        self.store = store if store is not None else MemoryStore()
        self.repo_root = repo_root if repo_root is not None else git.repo_path
        self.max_commits = max_commits
        self.memory = MemoryCache(clock=clock)
        self.snapshots = GraphSnapshotCache(self.store)
        self.merge_history = MergeHistory(self.store)
        self.incremental = IncrementalUpdater(
            git,
            self.snapshots,
            recorded_merges=self.merge_history.get_history,
            max_commits=max_commits,
        )
        self._locks: Dict[str, asyncio.Lock] = {}
        self._history_loaded = False

    @property
    def repo_id(self) -> str:
        return repo_storage_id(self.repo_root)

    @property
    def graph_cache_key(self) -> str:
        return f"{GRAPH_CACHE_PREFIX}:{self.repo_id}"

    def _lock(self) -> asyncio.Lock:
        return self._locks.setdefault(self.repo_id, asyncio.Lock())

    async def _ensure_history(self) -> None:
        if not self._history_loaded:
            await self.merge_history.load()
            self._history_loaded = True

    async def get_branches(self, force_refresh: bool = False) -> BranchSummary:
        key = f"{BRANCHES_CACHE_PREFIX}:{self.repo_id}"
        if not force_refresh:
            cached = self.memory.get(key)
            if cached is not None:
                return cached
        summary = await get_branches(self.git)
        self.memory.set(key, summary, BRANCHES_TTL_MS)
        return summary

    async def get_graph(self, force_refresh: bool = False) -> Graph:
        if not force_refresh:
            cached = self.memory.get(self.graph_cache_key)
            if cached is not None:
                return cached

        async with self._lock():
            if not force_refresh:
                # Another request may have rebuilt while we waited
                cached = self.memory.get(self.graph_cache_key)
                if cached is not None:
                    return cached
            return await self._load_or_build(force_refresh)

    async def _load_or_build(self, force_refresh: bool) -> Graph:
        await self._ensure_history()
        repo_id = self.repo_id
        head_hash = await resolve_head(self.git)

        if not force_refresh and head_hash:
            stored = await self.snapshots.get(repo_id, head_hash)
            if stored is not None:
                logger.debug(f"Graph snapshot hit for {head_hash[:7]}")
                self.memory.set(self.graph_cache_key, stored, GRAPH_TTL_MS)
                return stored

            graph = await self.incremental.try_build(repo_id, head_hash)
            if graph is not None:
                self.memory.set(self.graph_cache_key, graph, GRAPH_TTL_MS)
                await self.snapshots.set(repo_id, head_hash, graph)
                return graph

        graph = await self.build_full_graph()
        self.memory.set(self.graph_cache_key, graph, GRAPH_TTL_MS)
        # An empty graph is usually a failed scan, keep it out of the store
        if head_hash and graph.dag.nodes:
            await self.snapshots.set(repo_id, head_hash, graph)
        return graph

    async def build_full_graph(self) -> Graph:
        """Scans the most recent commits across all refs."""
        logger.info(f"Building full branch graph for {self.repo_root}")
        try:
            output = await self.git.run(*full_log_args(self.max_commits))
            commits = parse_log(output)
            enforce_commit_limit(commits, self.max_commits)
            summary = await self.get_branches(force_refresh=True)
        except GitCommandError as e:
            logger.warning(f"Could not build branch graph: {e}")
            return Graph()
        return build_graph(commits, summary, self.merge_history.get_history())

    async def get_graph_snapshot(self) -> Optional[Graph]:
        """Cached graph only; never starts a rebuild."""
        cached = self.memory.get(self.graph_cache_key)
        if cached is not None:
            return cached
        head_hash = await resolve_head(self.git)
        if not head_hash:
            return None
        return await self.snapshots.get(self.repo_id, head_hash)

    async def clear_graph_cache(self) -> None:
        self.memory.invalidate(GRAPH_CACHE_PREFIX)
        await self.snapshots.clear(self.repo_id)

    def invalidate(self, reason: str) -> None:
        """Called after anything that moves refs: commit, merge, checkout, push, pull..."""
        logger.debug(f"Invalidating branch graph cache: {reason}")
        self.memory.invalidate(GRAPH_CACHE_PREFIX)
        self.memory.invalidate(BRANCHES_CACHE_PREFIX)

    async def record_merge(
        self,
        from_branch: str,
        to_branch: str,
        type: MergeType,
        commit: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[MergeEvent]:
        """Registers a merge that just happened and drops the cached graph."""
        await self._ensure_history()
        if commit is None:
            commit = await resolve_ref(self.git, to_branch)
        event = None
        if commit:
            event = await self.merge_history.record_merge(from_branch, to_branch, commit, type, description)
        else:
            logger.warning(f"Merge {from_branch} -> {to_branch} not recorded, target does not resolve")
        self.invalidate("merge")
        return event

    async def get_merge_history(self) -> List[MergeEvent]:
        await self._ensure_history()
        return self.merge_history.get_history()

    async def get_layout(self, force_refresh: bool = False) -> LaneLayout:
        graph = await self.get_graph(force_refresh)
        # Stable sort keeps topological order among equal timestamps
        nodes = sorted(graph.dag.nodes, key=lambda n: n.timestamp, reverse=True)
        return LaneLayout(nodes, head=await resolve_head(self.git))
