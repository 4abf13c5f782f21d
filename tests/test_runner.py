import shutil
import subprocess

import pytest

from branch_graph.api.service import GraphService
from branch_graph.git.runner import GitCommandError, GitRunner

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(repo, *args):
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=repo,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def repo(tmp_path):
    """Creates a repository with a feature branch merged into main.

    Creates:
        c1 -- c2 ------ m   (main)
          \\           /
           f1 --------     (feature)
    """
    git(tmp_path, "init", "-q")
    git(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(tmp_path, "commit", "-q", "--allow-empty", "-m", "c1")
    git(tmp_path, "checkout", "-q", "-b", "feature")
    git(tmp_path, "commit", "-q", "--allow-empty", "-m", "f1")
    git(tmp_path, "checkout", "-q", "main")
    git(tmp_path, "commit", "-q", "--allow-empty", "-m", "c2")
    git(tmp_path, "merge", "-q", "--no-ff", "--no-edit", "feature")
    return tmp_path


@pytest.mark.asyncio
async def test_run_returns_stdout(repo):
    output = await GitRunner(repo).run("rev-parse", "--abbrev-ref", "HEAD")
    assert output.strip() == "main"


@pytest.mark.asyncio
async def test_failure_raises(repo):
    with pytest.raises(GitCommandError) as exc_info:
        await GitRunner(repo).run("rev-parse", "no-such-ref")
    assert exc_info.value.returncode != 0
    assert exc_info.value.git_args == ["rev-parse", "no-such-ref"]


@pytest.mark.asyncio
async def test_missing_binary_raises(repo):
    with pytest.raises(GitCommandError):
        await GitRunner(repo, git_binary="definitely-not-git").run("status")


@pytest.mark.asyncio
async def test_graph_of_real_repository(repo):
    graph = await GraphService(GitRunner(repo)).get_graph()

    assert len(graph.dag.nodes) == 4
    assert sorted(graph.branches) == ["feature", "main"]
    assert graph.current_branch == "main"
    assert sum(1 for n in graph.dag.nodes if n.is_merge) == 1
