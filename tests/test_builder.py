from branch_graph.dag.builder import build_dag, build_graph
from branch_graph.dag.merges import classify_merge, detect_merges
from branch_graph.dag.models import BranchSummary, CommitNode, MergeRecord
from branch_graph.dag.parser import parse_log

def node(commit_hash, parents=(), branches=(), ts=1000):
    return CommitNode(hash=commit_hash, parents=list(parents), branches=set(branches), timestamp=ts)

def as_map(*nodes):
    return {n.hash: n for n in nodes}

def merge_history():
    """m merges feature (p2) into main (p1)."""
    return as_map(
        node("m", ["p1", "p2"], ["main"], ts=4000),
        node("p2", ["base"], ["feature"], ts=3000),
        node("p1", ["base"], ["main"], ts=2000),
        node("base", [], [], ts=1000),
    )

def test_linear_scenario():
    commits = parse_log("h1\x00\x00refs/heads/main\x001000\nh2\x00h1\x00refs/heads/main\x001100")
    graph = build_graph(commits, BranchSummary(current="main", all=["main"]))

    assert [n.hash for n in graph.dag.nodes] == ["h1", "h2"]
    assert [(l.source, l.target) for l in graph.dag.links] == [("h1", "h2")]
    assert graph.merges == []
    assert graph.current_branch == "main"
    assert graph.branches == ["main"]

def test_three_way_merge_scenario():
    graph = build_graph(merge_history(), BranchSummary(current="main", all=["main", "feature"]))

    assert len(graph.merges) == 1
    merge = graph.merges[0]
    assert merge.from_branch == "feature"
    assert merge.to_branch == "main"
    assert merge.commit == "m"
    assert merge.type == "three-way"
    assert merge.timestamp == 4000
    assert merge.description == "Three-way merge: feature → main"

def test_merge_dag_nodes_and_links():
    graph = build_graph(merge_history(), BranchSummary(current="main", all=["main", "feature"]))
    nodes = {n.hash: n for n in graph.dag.nodes}

    assert nodes["m"].is_merge
    assert not nodes["p1"].is_merge
    assert ("p2", "m") in [(l.source, l.target) for l in graph.dag.links]
    assert len(graph.dag.links) == sum(len(n.parents) for n in graph.dag.nodes)

def test_edge_count_counts_boundary_parents():
    commits = as_map(node("a", ["outside1", "outside2"]), node("b", ["a"]))
    dag = build_dag(commits)
    assert len(dag.links) == 3

def test_prefers_current_branch_as_target():
    commits = as_map(
        node("m", ["p1", "p2"], ["main", "release"]),
        node("p1", [], ["main", "release"]),
        node("p2", [], ["feature"]),
    )
    assert classify_merge(commits["m"], commits, "release") == ("feature", "release")
    assert classify_merge(commits["m"], commits, "other") == ("feature", "main")

def test_parent_outside_working_set_is_skipped():
    commits = as_map(node("m", ["p1", "gone"], ["main"]), node("p1", [], ["main"]))
    assert detect_merges(commits, "main") == []

def test_source_branch_also_on_first_parent():
    # dev sits on both parents but only the merge moved it forward
    commits = as_map(
        node("m", ["p1", "p2"], ["main", "dev"]),
        node("p1", [], ["main", "dev"]),
        node("p2", [], ["dev", "main"]),
    )
    assert classify_merge(commits["m"], commits, "main") is None

def test_duplicate_pairs_are_recorded_once():
    commits = as_map(
        node("m2", ["m1", "f2"], ["main"], ts=5000),
        node("f2", [], ["feature"], ts=4000),
        node("m1", ["p1", "f1"], ["main"], ts=3000),
        node("f1", [], ["feature"], ts=2000),
        node("p1", [], ["main"], ts=1000),
    )
    graph = build_graph(commits, BranchSummary(current="main", all=["main", "feature"]))

    pairs = [(m.from_branch, m.to_branch) for m in graph.merges]
    assert pairs == [("feature", "main")]
    assert graph.merges[0].commit == "m2"
    assert len(set(pairs)) == len(pairs)

def test_recorded_events_are_reconciled():
    summary = BranchSummary(current="main", all=["main", "feature", "hotfix", "remotes/origin/main"])
    recorded = [
        MergeRecord(from_branch="hotfix", to_branch="main", commit="x1", type="fast-forward"),
        MergeRecord(from_branch="feature", to_branch="main", commit="x2", type="three-way"),
        MergeRecord(from_branch="deleted", to_branch="main", commit="x3", type="three-way"),
        MergeRecord(from_branch="main", to_branch="feature", commit="x4", type="three-way"),
    ]
    graph = build_graph(merge_history(), summary, recorded)

    assert graph.branches == ["main", "feature", "hotfix"]
    # History already explains feature -> main, the recorded copy is dropped
    assert [(m.from_branch, m.to_branch, m.commit) for m in graph.merges] == [
        ("feature", "main", "m"),
        ("main", "feature", "x4"),
    ]
    assert [(m.from_branch, m.commit) for m in graph.fast_forward_merges] == [("hotfix", "x1")]

def test_empty_commit_map():
    graph = build_graph({}, BranchSummary(current=None, all=["main"]))
    assert graph.dag.nodes == []
    assert graph.dag.links == []
    assert graph.merges == []
    assert graph.branches == ["main"]

def test_current_branch_defaults_to_main():
    graph = build_graph(as_map(node("a")), BranchSummary(current=None, all=[]))
    assert graph.current_branch == "main"

def test_merge_record_serializes_with_aliases():
    graph = build_graph(merge_history(), BranchSummary(current="main", all=["main", "feature"]))
    data = graph.model_dump(mode="json", by_alias=True)
    assert data["merges"][0]["from"] == "feature"
    assert data["merges"][0]["to"] == "main"
