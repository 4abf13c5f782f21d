import logging
from typing import Callable, Dict, Iterable, Optional

from pydantic import ValidationError

from branch_graph.cache.durable import GraphSnapshotCache
from branch_graph.config import INCREMENTAL_FILL_RATIO, INCREMENTAL_MAX_ATTEMPTS, MAX_COMMITS
from branch_graph.dag.builder import build_graph
from branch_graph.dag.limit import enforce_commit_limit
from branch_graph.dag.models import CommitNode, Graph, MergeRecord
from branch_graph.dag.parser import parse_log, range_log_args
from branch_graph.dag.refs import get_branches, is_ancestor
from branch_graph.git.runner import GitCommandError, GitRunner

logger = logging.getLogger(__name__)


def merge_commit_maps(
    new_commits: Dict[str, CommitNode],
    base: Graph,
    live_branches: Optional[Iterable[str]] = None,
) -> Dict[str, CommitNode]:
    """New commits first, then base nodes the delta did not already cover.

    A branch points at one commit, so a name decorating the delta is dropped
    from the carried base nodes, as is any branch not in `live_branches`.
    """
    combined: Dict[str, CommitNode] = dict(new_commits)
    moved = set()
    for commit in new_commits.values():
        moved.update(commit.branches)
    live = set(live_branches) if live_branches is not None else None

    for node in base.dag.nodes:
        if node.hash in combined:
            continue
        combined[node.hash] = CommitNode(
            hash=node.hash,
            parents=list(node.parents),
            branches={
                b for b in node.branches
                if b not in moved and (live is None or b in live)
            },
            timestamp=node.timestamp,
        )
    return combined


class IncrementalUpdater:
    """Extends a stored graph to a newer HEAD using only the commits in between."""

    def __init__(
        self,
        git: GitRunner,
        snapshots: GraphSnapshotCache,
        recorded_merges: Callable[[], Iterable[MergeRecord]] = lambda: (),
        max_commits: int = MAX_COMMITS,
        max_attempts: int = INCREMENTAL_MAX_ATTEMPTS,
        fill_ratio: float = INCREMENTAL_FILL_RATIO,
    ):
        self.git = git
        self.snapshots = snapshots
        self.recorded_merges = recorded_merges
        self.max_commits = max_commits
        self.max_attempts = max_attempts
        self.fill_ratio = fill_ratio

    async def try_build(self, repo_id: str, head_hash: str) -> Optional[Graph]:
        """Returns the extended graph, or None when a full rebuild is needed."""
        if not head_hash:
            return None
        candidates = list(reversed(await self.snapshots.index(repo_id)))
        for candidate in candidates[:self.max_attempts]:
            if candidate == head_hash:
                continue
            try:
                graph = await self._try_candidate(repo_id, candidate, head_hash)
            except (GitCommandError, ValueError, ValidationError) as e:
                logger.warning(f"Incremental candidate {candidate[:7]} failed: {e}")
                continue
            if graph is not None:
                logger.debug(f"Incremental graph update {candidate[:7]} -> {head_hash[:7]}")
                return graph
        return None

    async def _try_candidate(self, repo_id: str, candidate: str, head_hash: str) -> Optional[Graph]:
        base = await self.snapshots.get(repo_id, candidate)
        if base is None:
            return None
        # Nearly full snapshots gain little from being extended
        if len(base.dag.nodes) >= self.max_commits * self.fill_ratio:
            return None
        if not await is_ancestor(self.git, candidate, head_hash):
            return None
        return await self.extend(base, candidate, head_hash)

    async def extend(self, base: Graph, base_hash: str, head_hash: str) -> Optional[Graph]:
        output = await self.git.run(*range_log_args(base_hash, head_hash))
        summary = await get_branches(self.git)

        combined = merge_commit_maps(parse_log(output), base, summary.local)
        if not combined:
            return None

        enforce_commit_limit(combined, self.max_commits)
        return build_graph(combined, summary, self.recorded_merges())
