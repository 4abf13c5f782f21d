from typing import Dict, Iterable, List

from branch_graph.dag.merges import detect_merges, reconcile_merges
from branch_graph.dag.models import (
    BranchSummary,
    CommitNode,
    DagLink,
    DagNode,
    Graph,
    GraphDag,
    MergeRecord,
)

DEFAULT_BRANCH = "main"


def build_dag(commits: Dict[str, CommitNode]) -> GraphDag:
    """One node per commit and one parent -> child link per parent."""
    nodes: List[DagNode] = []
    links: List[DagLink] = []

    for commit_hash, commit in commits.items():
        nodes.append(DagNode(
            hash=commit_hash,
            parents=list(commit.parents),
            branches=sorted(commit.branches),
            timestamp=commit.timestamp,
            is_merge=commit.is_merge,
        ))
        for parent in commit.parents:
            links.append(DagLink(source=parent, target=commit_hash))

    return GraphDag(nodes=nodes, links=links)


def build_graph(
    commits: Dict[str, CommitNode],
    summary: BranchSummary,
    recorded: Iterable[MergeRecord] = (),
) -> Graph:
    """Assembles the exported graph from an already limited commit map."""
    local_branches = summary.local
    current_branch = summary.current or DEFAULT_BRANCH

    if not commits:
        return Graph(branches=local_branches, current_branch=current_branch)

    merges = detect_merges(commits, current_branch)
    merges = reconcile_merges(merges, recorded, local_branches)

    return Graph(
        branches=local_branches,
        merges=[m for m in merges if m.type == "three-way"],
        fast_forward_merges=[m for m in merges if m.type == "fast-forward"],
        current_branch=current_branch,
        dag=build_dag(commits),
    )
