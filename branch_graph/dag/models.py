from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

MergeType = Literal["three-way", "fast-forward"]


@dataclass
class CommitNode:
    hash: str
    parents: List[str] = field(default_factory=list)
    branches: Set[str] = field(default_factory=set)
    timestamp: int = 0  # milliseconds

    @property
    def is_merge(self) -> bool:
        return len(self.parents) >= 2


@dataclass
class BranchSummary:
    current: Optional[str] = None
    all: List[str] = field(default_factory=list)

    @property
    def local(self) -> List[str]:
        """Branch names without remote-tracking entries."""
        return [b for b in self.all if not b.startswith("remotes/")]


class MergeRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_branch: str = Field(alias="from")
    to_branch: str = Field(alias="to")
    commit: str
    type: MergeType
    description: Optional[str] = None
    timestamp: Optional[int] = None


class MergeEvent(MergeRecord):
    """A merge recorded when it happened (see MergeHistory)."""

    id: str
    timestamp: int


class DagNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    parents: List[str]
    branches: List[str]
    timestamp: int
    is_merge: bool = False


class DagLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    # parent -> child
    source: str
    target: str


class GraphDag(BaseModel):
    model_config = ConfigDict(frozen=True)

    nodes: List[DagNode] = Field(default_factory=list)
    links: List[DagLink] = Field(default_factory=list)


class Graph(BaseModel):
    model_config = ConfigDict(frozen=True)

    branches: List[str] = Field(default_factory=list)
    merges: List[MergeRecord] = Field(default_factory=list)
    fast_forward_merges: List[MergeRecord] = Field(default_factory=list)
    current_branch: Optional[str] = None
    dag: GraphDag = Field(default_factory=GraphDag)

    def to_commit_map(self) -> Dict[str, CommitNode]:
        """Unwraps the DAG nodes back into CommitNodes, keeping node order."""
        return {
            node.hash: CommitNode(
                hash=node.hash,
                parents=list(node.parents),
                branches=set(node.branches),
                timestamp=node.timestamp,
            )
            for node in self.dag.nodes
        }
