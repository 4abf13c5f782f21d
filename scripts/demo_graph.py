import asyncio
from pathlib import Path

from branch_graph.api.service import GraphService
from branch_graph.git.runner import GitRunner

async def show(repo: Path):
    print("Building branch graph...")
    service = GraphService(GitRunner(repo))
    graph = await service.get_graph()
    print(f"Loaded {len(graph.dag.nodes)} commits on {len(graph.branches)} local branches.")
    print(f"Current branch: {graph.current_branch}")

    for merge in graph.merges:
        print(f"  merge {merge.commit[:7]}: {merge.description}")

    print("\nLanes:")
    layout = await service.get_layout()
    for point in layout.vertex_points():
        marker = "*" if point.is_current else "o"
        print(f"{'  ' * point.lane}{marker} {point.hash[:7]} (lane {point.lane}, colour {point.colour})")

def main():
    repo = Path(".")
    if not (repo / ".git").exists():
        print("No .git directory found. Run this from the root of a git repo.")
        return
    asyncio.run(show(repo))

if __name__ == "__main__":
    main()
