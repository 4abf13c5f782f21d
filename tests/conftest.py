import asyncio
from pathlib import Path

import pytest

from branch_graph.git.runner import GitCommandError


class FakeGit:
    """Stands in for GitRunner: canned stdout per argument tuple."""

    def __init__(self, responses=None, repo_path=Path("/work/repo")):
        self.repo_path = repo_path
        self.responses = dict(responses or {})
        self.calls = []

    def set(self, *args, output=""):
        self.responses[tuple(args)] = output

    def fail(self, *args):
        self.responses[tuple(args)] = GitCommandError(args, 128, "fatal: scripted failure")

    def count(self, *prefix):
        return sum(1 for call in self.calls if call[:len(prefix)] == prefix)

    async def run(self, *args):
        self.calls.append(args)
        # Let other tasks interleave like a real subprocess would
        await asyncio.sleep(0)
        result = self.responses.get(args)
        if result is None:
            raise GitCommandError(args, 1, "fatal: unexpected command")
        if isinstance(result, Exception):
            raise result
        return result


def log_line(commit_hash, parents=(), refs=(), seconds=1000):
    return "\x00".join([commit_hash, " ".join(parents), ", ".join(refs), str(seconds)])


def log_text(*lines):
    return "\n".join(lines) + "\n"


@pytest.fixture
def fake_git():
    return FakeGit()
