"""Test configuration and fixtures."""

from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

import pytest
from git import Actor, Repo

AUTHOR = Actor("Test User", "test@example.com")


def commit_file(repo: Repo, name: str, content, when: Optional[datetime] = None) -> None:
    """Write a file into the work tree and commit it, optionally backdated."""
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    repo.index.add([name])
    dates = {}
    if when is not None:
        # Raw git date format: "<unix timestamp> <offset>"
        raw = f"{int(when.timestamp())} +0000"
        dates = {"author_date": raw, "commit_date": raw}
    repo.index.commit(f"Add {name}", author=AUTHOR, committer=AUTHOR, **dates)


def init_repo(path: Path, branch: str = "main") -> Repo:
    """Create a repository with one commit on ``branch``."""
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(path)
    repo.config_writer().set_value("user", "name", AUTHOR.name).release()
    repo.config_writer().set_value("user", "email", AUTHOR.email).release()
    commit_file(repo, "README.md", "# Test Repository")
    if repo.active_branch.name != branch:
        repo.active_branch.rename(branch)
    return repo


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Branches in the local repository:
    - main: default branch, pushed to origin
    - feature/merged: merged into main
    - feature/unmerged: has a commit main does not have
    - feature/gone: tracked a remote branch that was deleted
    - feature/current: checked out

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = init_repo(local_path)
    main_branch = local_repo.heads.main

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")
    main_branch.set_tracking_branch(origin.refs.main)

    def create_branch(name: str, merge: bool = False, push: bool = False) -> None:
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()
        commit_file(local_repo, f"{name}.txt", f"{name} content")
        if push:
            origin.push(name)
            branch.set_tracking_branch(origin.refs[name])
        if merge:
            main_branch.checkout()
            local_repo.git.merge(name, "--no-ff")
            origin.push("main")

    create_branch("feature/merged", merge=True)
    create_branch("feature/unmerged")
    create_branch("feature/gone", push=True)
    origin.push(":feature/gone")

    main_branch.checkout()
    local_repo.create_head("feature/current").checkout()

    yield local_path, remote_path
