from branch_graph.dag.limit import enforce_commit_limit
from branch_graph.dag.models import CommitNode

def make_commits(timestamps):
    return {f"c{i}": CommitNode(hash=f"c{i}", timestamp=ts) for i, ts in enumerate(timestamps)}

def test_noop_when_within_limit():
    commits = make_commits([3, 2, 1])
    enforce_commit_limit(commits, 3)
    assert list(commits) == ["c0", "c1", "c2"]

    enforce_commit_limit(commits, 10)
    assert len(commits) == 3

def test_evicts_oldest_by_timestamp_not_insertion():
    # c3 is newest but was inserted last, as after an incremental merge
    commits = make_commits([500, 400, 100, 900, 200])
    enforce_commit_limit(commits, 3)
    assert set(commits) == {"c0", "c1", "c3"}

def test_equal_timestamps_evict_later_inserted_first():
    commits = make_commits([100, 100, 100, 100])
    enforce_commit_limit(commits, 2)
    assert list(commits) == ["c0", "c1"]

def test_size_never_exceeds_limit_and_shrinking_only_removes():
    commits = make_commits([(i * 37) % 101 for i in range(60)])
    previous = set(commits)
    for limit in [50, 30, 30, 10, 1, 0]:
        enforce_commit_limit(commits, limit)
        assert len(commits) <= limit
        assert set(commits) <= previous
        previous = set(commits)
