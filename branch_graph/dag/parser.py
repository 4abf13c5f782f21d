import time
from typing import Dict, List, Optional

from branch_graph.dag.models import CommitNode

FIELD_SEP = "\x00"
GRAPH_LOG_FORMAT = "%H%x00%P%x00%D%x00%ct"
HEADS_PREFIX = "refs/heads/"


def full_log_args(max_count: int) -> List[str]:
    """git arguments for a full graph scan across all refs."""
    return [
        "log",
        "--all",
        f"--max-count={max_count}",
        "--topo-order",
        "--date-order",
        f"--format={GRAPH_LOG_FORMAT}",
        "--decorate=full",
    ]


def range_log_args(base: str, head: str) -> List[str]:
    """git arguments for the commits reachable from head but not base."""
    return [
        "log",
        f"{base}..{head}",
        "--topo-order",
        "--date-order",
        f"--format={GRAPH_LOG_FORMAT}",
        "--decorate=full",
    ]


def parse_branch_refs(ref_field: str) -> List[str]:
    """Extracts local branch names from a %D decoration field.

    "HEAD -> refs/heads/main, tag: refs/tags/v1, refs/remotes/origin/main"
    yields ["main"].
    """
    names = []
    for ref in ref_field.split(","):
        ref = ref.strip()
        if ref.startswith("HEAD -> "):
            ref = ref[len("HEAD -> "):]
        if ref.startswith(HEADS_PREFIX) and len(ref) > len(HEADS_PREFIX):
            names.append(ref[len(HEADS_PREFIX):])
    return names


def _parse_timestamp(raw: str) -> int:
    try:
        return int(raw) * 1000
    except ValueError:
        return int(time.time() * 1000)


def parse_log_line(line: str) -> Optional[CommitNode]:
    parts = line.split(FIELD_SEP)
    if len(parts) < 4:
        return None

    commit_hash = parts[0].strip()
    if not commit_hash:
        return None

    parents = parts[1].split()
    branches = set(parse_branch_refs(parts[2]))
    return CommitNode(
        hash=commit_hash,
        parents=parents,
        branches=branches,
        timestamp=_parse_timestamp(parts[3].strip()),
    )


def parse_log(output: str) -> Dict[str, CommitNode]:
    """Parses graph-format git log output into hash -> CommitNode, in log order."""
    commits: Dict[str, CommitNode] = {}
    if not output or not output.strip():
        return commits

    for line in output.split("\n"):
        if not line.strip():
            continue
        node = parse_log_line(line)
        if node is None:
            # Malformed record, keep going
            continue
        commits[node.hash] = node

    return commits
