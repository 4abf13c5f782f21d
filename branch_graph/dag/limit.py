import logging
from typing import Dict

from branch_graph.config import MAX_COMMITS
from branch_graph.dag.models import CommitNode

logger = logging.getLogger(__name__)


def enforce_commit_limit(commits: Dict[str, CommitNode], limit: int = MAX_COMMITS) -> None:
    """Drops the oldest commits (by timestamp) until at most `limit` remain.

    Incremental merges can insert old commits after new ones, so insertion
    order says nothing about age. Among equal timestamps the later-inserted
    entry goes first.
    """
    excess = len(commits) - max(limit, 0)
    if excess <= 0:
        return

    positions = {h: i for i, h in enumerate(commits)}
    victims = sorted(commits, key=lambda h: (commits[h].timestamp, -positions[h]))[:excess]
    for commit_hash in victims:
        del commits[commit_hash]

    logger.debug(f"Commit limit {limit} reached, evicted {excess} commits")
