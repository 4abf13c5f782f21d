from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from branch_graph.dag.models import MergeType

class MergeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_branch: str = Field(alias="from")
    to_branch: str = Field(alias="to")
    type: MergeType = "three-way"
    # Resolved from the target branch when omitted
    commit: Optional[str] = None
    description: Optional[str] = None

class InvalidateRequest(BaseModel):
    reason: str
    merge: Optional[MergeRequest] = None

class LayoutNode(BaseModel):
    hash: str
    lane: int
    row: int
    colour: int
    x: float
    y: float
    is_merge: bool
    is_current: bool
    committed: bool

class LayoutLine(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float
    committed: bool
    locked_first: bool

class LayoutBranch(BaseModel):
    colour: str
    lines: List[LayoutLine]

class LayoutResponse(BaseModel):
    nodes: List[LayoutNode]
    branches: List[LayoutBranch]
    width: float
    height: float
