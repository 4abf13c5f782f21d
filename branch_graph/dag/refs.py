from typing import Optional

from branch_graph.dag.models import BranchSummary
from branch_graph.git.runner import GitCommandError, GitRunner


def parse_branch_output(output: str) -> BranchSummary:
    """Parses `git branch --all --no-color` into a BranchSummary.

    The starred line is the current branch; detached HEAD entries and
    symbolic `remotes/origin/HEAD -> ...` lines are skipped.
    """
    summary = BranchSummary()
    for line in output.splitlines():
        if not line.strip():
            continue
        is_current = line.startswith("*")
        name = line[2:].strip()
        if not name or name.startswith("(") or " -> " in name:
            continue
        summary.all.append(name)
        if is_current:
            summary.current = name
    return summary


async def get_branches(git: GitRunner) -> BranchSummary:
    return parse_branch_output(await git.run("branch", "--all", "--no-color"))


async def resolve_head(git: GitRunner) -> Optional[str]:
    """Resolves HEAD to the current commit hash, None for an unborn or missing repo."""
    try:
        head = (await git.run("rev-parse", "HEAD")).strip()
    except GitCommandError:
        return None
    return head or None


async def resolve_ref(git: GitRunner, ref: str) -> Optional[str]:
    try:
        oid = (await git.run("rev-parse", ref)).strip()
    except GitCommandError:
        return None
    return oid or None


async def is_ancestor(git: GitRunner, ancestor: str, descendant: str) -> bool:
    if not ancestor or not descendant:
        return False
    try:
        await git.run("merge-base", "--is-ancestor", ancestor, descendant)
    except GitCommandError:
        return False
    return True
