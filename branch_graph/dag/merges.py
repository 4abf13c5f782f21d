from typing import Dict, Iterable, List, Optional, Tuple

from branch_graph.dag.models import CommitNode, MergeRecord


def describe_merge(merge_type: str, from_branch: str, to_branch: str) -> str:
    label = "Fast-forward merge" if merge_type == "fast-forward" else "Three-way merge"
    return f"{label}: {from_branch} → {to_branch}"


def classify_merge(
    commit: CommitNode,
    commits: Dict[str, CommitNode],
    current_branch: Optional[str],
) -> Optional[Tuple[str, str]]:
    """Guesses (from_branch, to_branch) for a merge commit.

    The target is a branch shared by the commit and its first parent but not
    the second; the source is a branch the second parent brought in. Returns
    None when the parents fall outside the working set or nothing resolves.
    """
    if len(commit.parents) < 2:
        return None
    first = commits.get(commit.parents[0])
    second = commits.get(commit.parents[1])
    if first is None or second is None:
        return None

    to_candidates = [
        b for b in sorted(commit.branches)
        if b in first.branches and b not in second.branches
    ]
    from_candidates = [
        b for b in sorted(second.branches)
        if b not in first.branches or (b in commit.branches and b not in to_candidates)
    ]
    if not to_candidates or not from_candidates:
        return None

    to_branch = current_branch if current_branch in to_candidates else to_candidates[0]
    from_branch = from_candidates[0]
    if from_branch == to_branch:
        return None
    return from_branch, to_branch


def detect_merges(commits: Dict[str, CommitNode], current_branch: Optional[str]) -> List[MergeRecord]:
    """Three-way merges inferred from history, first record per branch pair."""
    merges: List[MergeRecord] = []
    seen = set()
    for commit in commits.values():
        pair = classify_merge(commit, commits, current_branch)
        if pair is None or pair in seen:
            continue
        seen.add(pair)
        from_branch, to_branch = pair
        merges.append(MergeRecord(
            from_branch=from_branch,
            to_branch=to_branch,
            commit=commit.hash,
            type="three-way",
            description=describe_merge("three-way", from_branch, to_branch),
            timestamp=commit.timestamp,
        ))
    return merges


def reconcile_merges(
    merges: List[MergeRecord],
    recorded: Iterable[MergeRecord],
    local_branches: Iterable[str],
) -> List[MergeRecord]:
    """Adds recorded merge events between live branches that history did not show."""
    result = list(merges)
    local = set(local_branches)
    seen = {(m.from_branch, m.to_branch) for m in result}
    for event in recorded:
        if event.from_branch not in local or event.to_branch not in local:
            continue
        pair = (event.from_branch, event.to_branch)
        if pair in seen:
            continue
        seen.add(pair)
        result.append(MergeRecord(
            from_branch=event.from_branch,
            to_branch=event.to_branch,
            commit=event.commit,
            type=event.type,
            description=event.description,
            timestamp=event.timestamp,
        ))
    return result
