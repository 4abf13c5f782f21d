import shutil
import subprocess
from pathlib import Path

IDENTITY = ["-c", "user.name=User", "-c", "user.email=user@example.com"]

def git(repo_dir, *args):
    subprocess.run(["git", *IDENTITY, *args], cwd=repo_dir, check=True, capture_output=True)

def commit(repo_dir, message):
    git(repo_dir, "commit", "-q", "--allow-empty", "-m", message)
    print(f"Created commit: {message}")

def main():
    repo_dir = Path("demo_repo")
    if repo_dir.exists():
        shutil.rmtree(repo_dir)
    repo_dir.mkdir()

    print(f"Creating demo repo in {repo_dir}...")
    git(repo_dir, "init", "-q")
    git(repo_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    commit(repo_dir, "Initial commit")
    commit(repo_dir, "Add README")

    # feature: two commits, merged back with a merge commit
    git(repo_dir, "checkout", "-q", "-b", "feature")
    commit(repo_dir, "Start feature")
    commit(repo_dir, "Finish feature")
    git(repo_dir, "checkout", "-q", "main")
    commit(repo_dir, "Fix typo on main")
    git(repo_dir, "merge", "-q", "--no-ff", "--no-edit", "feature")
    print("Merged feature into main")

    # hotfix: fast-forwarded, leaves no merge commit
    git(repo_dir, "checkout", "-q", "-b", "hotfix")
    commit(repo_dir, "Hotfix")
    git(repo_dir, "checkout", "-q", "main")
    git(repo_dir, "merge", "-q", "--ff-only", "hotfix")
    print("Fast-forwarded main to hotfix")

    # experiment: left unmerged so it gets its own lane
    git(repo_dir, "checkout", "-q", "-b", "experiment", "HEAD~2")
    commit(repo_dir, "Try something")
    git(repo_dir, "checkout", "-q", "main")

    print("\nDemo repo ready. Run: cd demo_repo && python ../scripts/demo_graph.py")

if __name__ == "__main__":
    main()
