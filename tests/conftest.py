import os
import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


def git(repo: Path, *args: str, env: dict | None = None) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True, check=True, text=True,
        env=env,
    )
    return result.stdout.strip()


def _init_repo(path: Path) -> Path:
    subprocess.run(
        ["git", "init", "--initial-branch=main", str(path)],
        capture_output=True, check=True,
    )
    git(path, "config", "user.name", "Test User")
    git(path, "config", "user.email", "test@example.com")
    git(path, "config", "commit.gpgsign", "false")
    return path


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository."""
    return _init_repo(tmp_path / "repo")


def _commit_env(days_ago: int, author_name: str, author_email: str) -> dict:
    date = datetime.now(timezone.utc) - timedelta(days=days_ago)
    date_str = date.strftime("%Y-%m-%dT%H:%M:%S %z")
    return {
        **os.environ,
        "GIT_AUTHOR_DATE": date_str,
        "GIT_COMMITTER_DATE": date_str,
        "GIT_AUTHOR_NAME": author_name,
        "GIT_AUTHOR_EMAIL": author_email,
        "GIT_COMMITTER_NAME": author_name,
        "GIT_COMMITTER_EMAIL": author_email,
    }


def commit_file(
    repo: Path,
    file_path: str,
    content: str,
    message: str,
    days_ago: int = 0,
    author_name: str = "Test User",
    author_email: str = "test@example.com",
) -> str:
    """Write one file, commit it at a known relative date, return the sha."""
    full_path = repo / file_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content)
    git(repo, "add", file_path)
    git(repo, "commit", "-m", message, env=_commit_env(days_ago, author_name, author_email))
    return git(repo, "rev-parse", "HEAD")


def delete_file(repo: Path, file_path: str, message: str, days_ago: int = 0) -> str:
    git(repo, "rm", "-q", file_path)
    git(repo, "commit", "-m", message, env=_commit_env(days_ago, "Test User", "test@example.com"))
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_repo_with_history(tmp_git_repo: Path) -> Path:
    """Repo with 5 commits: adds, a modification, a deletion.

    1 README.md          added
    2 src/main.py        added
    3 src/utils.py       added
    4 src/main.py        modified
    5 src/utils.py       deleted
    """
    commit_file(tmp_git_repo, "README.md", "# Project\n", "Initial commit", days_ago=60)
    commit_file(tmp_git_repo, "src/main.py", "print('hello')\n", "Add main", days_ago=45)
    commit_file(tmp_git_repo, "src/utils.py", "def helper(): pass\n", "Add utils", days_ago=30)
    commit_file(
        tmp_git_repo, "src/main.py", "print('hello')\nprint('world')\n",
        "Update main\n\nSay hello to the world too.", days_ago=15,
    )
    delete_file(tmp_git_repo, "src/utils.py", "Remove utils", days_ago=5)
    return tmp_git_repo


def history_shas(repo: Path) -> list[str]:
    """Oldest-first shas as git reports them."""
    return git(repo, "rev-list", "--reverse", "HEAD").splitlines()


@pytest.fixture
def cloned_repo(tmp_path: Path) -> tuple[Path, Path]:
    """An upstream repo with two commits and a clone of it.

    Returns (upstream, clone).
    """
    upstream = _init_repo(tmp_path / "upstream")
    commit_file(upstream, "a.txt", "a\n", "First", days_ago=10)
    commit_file(upstream, "b.txt", "b\n", "Second", days_ago=9)
    clone = tmp_path / "clone"
    subprocess.run(
        ["git", "clone", str(upstream), str(clone)],
        capture_output=True, check=True,
    )
    git(clone, "config", "user.name", "Test User")
    git(clone, "config", "user.email", "test@example.com")
    return upstream, clone
