import logging
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote

from pydantic import ValidationError

from branch_graph.cache.store import KeyValueStore
from branch_graph.config import SNAPSHOT_INDEX_MAX
from branch_graph.dag.models import Graph

logger = logging.getLogger(__name__)

DEFAULT_REPO_ID = "default"

# Same characters JavaScript's encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def repo_storage_id(root: Optional[Union[str, Path]]) -> str:
    """Storage identity of a repository: its percent-encoded workspace root."""
    if not root:
        return DEFAULT_REPO_ID
    return quote(str(root), safe=_URI_COMPONENT_SAFE)


def snapshot_key(repo_id: str, head_hash: str) -> str:
    return f"branchGraph:{repo_id}:{head_hash}"


def index_key(repo_id: str) -> str:
    return f"branchGraphIndex:{repo_id}"


class GraphSnapshotCache:
    """Graphs persisted per (repository, HEAD) with a bounded index of heads.

    The index is oldest first; once it outgrows `max_snapshots` the oldest
    head's graph is deleted along with its index entry. Storage errors never
    escape: reads degrade to a miss and writes are logged and dropped.
    """

    def __init__(self, store: KeyValueStore, max_snapshots: int = SNAPSHOT_INDEX_MAX):
        self.store = store
        self.max_snapshots = max_snapshots

    async def index(self, repo_id: str) -> List[str]:
        try:
            hashes = await self.store.get(index_key(repo_id), [])
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read snapshot index for {repo_id}: {e}")
            return []
        if not isinstance(hashes, list):
            return []
        return [h for h in hashes if isinstance(h, str) and h]

    async def get(self, repo_id: str, head_hash: str) -> Optional[Graph]:
        if not repo_id or not head_hash:
            return None
        try:
            raw = await self.store.get(snapshot_key(repo_id, head_hash))
            if raw is None:
                return None
            return Graph.model_validate(raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not load graph snapshot {head_hash[:7]}: {e}")
            return None

    async def set(self, repo_id: str, head_hash: str, graph: Graph) -> None:
        if not repo_id or not head_hash:
            return
        try:
            await self.store.set(
                snapshot_key(repo_id, head_hash),
                graph.model_dump(mode="json", by_alias=True),
            )

            hashes = await self.index(repo_id)
            if head_hash in hashes:
                return
            hashes.append(head_hash)
            while len(hashes) > self.max_snapshots:
                oldest = hashes.pop(0)
                await self.store.delete(snapshot_key(repo_id, oldest))
                logger.debug(f"Snapshot index full, dropped {oldest[:7]}")
            await self.store.set(index_key(repo_id), hashes)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save graph snapshot {head_hash[:7]}: {e}")

    async def clear(self, repo_id: str) -> None:
        try:
            for head_hash in await self.index(repo_id):
                await self.store.delete(snapshot_key(repo_id, head_hash))
            await self.store.set(index_key(repo_id), [])
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not clear graph snapshots for {repo_id}: {e}")
