import logging
import time
import uuid
from typing import List, Optional

from pydantic import ValidationError

from branch_graph.cache.store import KeyValueStore
from branch_graph.config import MERGE_HISTORY_MAX
from branch_graph.dag.merges import describe_merge
from branch_graph.dag.models import MergeEvent, MergeType

logger = logging.getLogger(__name__)

STORAGE_KEY = "branchGraph.mergeHistory"


class MergeHistory:
    """Append-only log of merges performed through the tool, newest first.

    Fast-forward merges leave nothing in history to detect, so they are only
    known from this log.
    """

    def __init__(self, store: Optional[KeyValueStore] = None, max_entries: int = MERGE_HISTORY_MAX):
        self.store = store
        self.max_entries = max_entries
        self._history: List[MergeEvent] = []

    async def load(self) -> None:
        if self.store is None:
            return
        try:
            raw = await self.store.get(STORAGE_KEY, [])
            self._history = [MergeEvent.model_validate(item) for item in raw or []]
        except (OSError, ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Could not load merge history: {e}")
            self._history = []

    async def record_merge(
        self,
        from_branch: str,
        to_branch: str,
        commit: str,
        type: MergeType,
        description: Optional[str] = None,
    ) -> MergeEvent:
        now = int(time.time() * 1000)
        event = MergeEvent(
            id=f"{now}-{uuid.uuid4().hex[:6]}",
            from_branch=from_branch,
            to_branch=to_branch,
            commit=commit,
            type=type,
            description=description or describe_merge(type, from_branch, to_branch),
            timestamp=now,
        )
        self._history.insert(0, event)
        del self._history[self.max_entries:]
        await self._save()
        return event

    def get_history(self) -> List[MergeEvent]:
        return list(self._history)

    async def _save(self) -> None:
        if self.store is None:
            return
        try:
            await self.store.set(
                STORAGE_KEY,
                [e.model_dump(mode="json", by_alias=True) for e in self._history],
            )
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save merge history: {e}")
