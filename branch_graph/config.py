import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

# Commit-graph tunables
MAX_COMMITS = 800
GRAPH_TTL_MS = 10000
BRANCHES_TTL_MS = 5000
MEMORY_CACHE_CAPACITY = 100
SNAPSHOT_INDEX_MAX = 20
INCREMENTAL_MAX_ATTEMPTS = 10
INCREMENTAL_FILL_RATIO = 0.9
MERGE_HISTORY_MAX = 100


@dataclass
class Settings:
    repo_path: Optional[Path] = None
    state_file: Optional[Path] = None
    git_timeout: float = 30.0
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    max_commits: int = MAX_COMMITS


def load_settings() -> Settings:
    """Reads settings from the environment."""
    repo_env = os.getenv("REPO_PATH")
    repo_path = Path(repo_env).resolve() if repo_env else Path.cwd()

    # An empty BRANCH_GRAPH_STATE_FILE means "keep snapshots in memory only"
    state_env = os.getenv("BRANCH_GRAPH_STATE_FILE")
    if state_env is None:
        state_file: Optional[Path] = repo_path / ".git" / "branch-graph-state.json"
    elif state_env.strip():
        state_file = Path(state_env)
    else:
        state_file = None

    try:
        git_timeout = float(os.getenv("GIT_TIMEOUT", "30"))
    except ValueError:
        git_timeout = 30.0

    allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "*")
    allowed_origins = [origin.strip() for origin in allowed_origins_env.split(",")]

    return Settings(
        repo_path=repo_path,
        state_file=state_file,
        git_timeout=git_timeout,
        allowed_origins=allowed_origins,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
