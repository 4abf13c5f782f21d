import asyncio
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """git exited non-zero, timed out, or could not be started."""

    def __init__(self, args, returncode: Optional[int] = None, stderr: str = ""):
        self.git_args = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no stderr"
        super().__init__(f"git {' '.join(self.git_args)} failed ({returncode}): {detail}")


class GitRunner:
    """Runs git in a working tree and returns its stdout."""

    def __init__(self, repo_path: Path, timeout: float = 30.0, git_binary: str = "git"):
        self.repo_path = Path(repo_path)
        self.timeout = timeout
        self.git_binary = git_binary

    async def run(self, *args: str) -> str:
        cmd = [self.git_binary, "-C", str(self.repo_path), *args]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GitCommandError(args, stderr=str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise GitCommandError(args, stderr=f"timed out after {self.timeout}s")

        if proc.returncode != 0:
            raise GitCommandError(args, proc.returncode, stderr.decode(errors="replace"))
        return stdout.decode(errors="replace")
