"""Git repository operations."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Generic, Iterator, Optional, TypeVar

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BRANCH = "main"
DEFAULT_REMOTE = "origin"
GONE_MARKER = ": gone]"
COMMIT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"
KB = 1024
MB = 1024 * 1024


class GitError(Exception):
    """Git operation error."""


@dataclass
class BranchInfo:
    """A branch selected for cleanup."""

    name: str
    days_ago: Optional[int] = None


@dataclass
class LargeObject:
    """A blob found in history."""

    hexsha: str
    size: int
    path: str

    @property
    def size_str(self) -> str:
        return format_size(self.size)


@dataclass
class Probe(Generic[T]):
    """Result of a git query.

    An empty probe is either a query that found nothing or one that could not
    run at all; ``error`` tells them apart.
    """

    items: list[T] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def format_size(size: int) -> str:
    """Format a byte count as B, KB or MB with one decimal place."""
    if size > MB:
        return f"{size / MB:.1f} MB"
    if size > KB:
        return f"{size / KB:.1f} KB"
    return f"{size} B"


def is_stale(last_commit: datetime, cutoff: datetime) -> bool:
    """Check if a commit falls strictly before the cutoff."""
    return last_commit < cutoff


def is_protected(branch_name: str, patterns: tuple[str, ...]) -> bool:
    """Check if a branch matches any of the protection patterns."""
    return any(fnmatch(branch_name, pattern.strip()) for pattern in patterns if pattern.strip())


def parse_commit_date(value: str) -> datetime:
    """Parse the output of ``git log --format=%ci``.

    Raises:
        ValueError: If the value is not an ISO-like committer date
    """
    return datetime.strptime(value.strip(), COMMIT_DATE_FORMAT)


def strip_decoration(line: str) -> str:
    """Remove the current/worktree markers ``git branch`` puts before names."""
    line = line.strip()
    if line[:2] in ("* ", "+ "):
        line = line[2:]
    return line.strip()


def _branch_names(output: str) -> list[str]:
    names = []
    for line in output.splitlines():
        name = strip_decoration(line)
        # Skip empty lines and "(HEAD detached at ...)"
        if not name or name.startswith("("):
            continue
        names.append(name)
    return names


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path) -> None:
        """Open the repository containing ``path``.

        Raises:
            GitError: If ``path`` is not inside a git repository
        """
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as err:
            raise GitError(f"Not a git repository: {path}") from err
        logger.debug("Opened repository at %s", self.repo.git_dir)

    def run(self, command: str, *args: str, ignore_error: bool = False) -> str:
        """Run a git subcommand and return its trimmed output.

        Args:
            command: Git subcommand, underscores are turned into dashes
            *args: Arguments passed to the subcommand
            ignore_error: Return an empty string instead of raising on failure

        Raises:
            GitError: If git exits with a non-zero status and ``ignore_error`` is False
        """
        logger.debug("git %s %s", command.replace("_", "-"), " ".join(args))
        try:
            return str(getattr(self.repo.git, command)(*args)).strip()
        except GitCommandError as err:
            if ignore_error:
                logger.debug("Ignoring git error: %s", err)
                return ""
            raise GitError(str(err).strip()) from err

    def current_branch(self) -> str:
        """Get current branch name, empty on a detached HEAD."""
        try:
            return self.run("branch", "--show-current")
        except GitError as err:
            logger.debug("Could not determine current branch: %s", err)
            return ""

    def _default_from_remote_head(self) -> Optional[str]:
        remotes = self.run("remote", ignore_error=True).splitlines()
        remote = remotes[0].strip() if remotes and remotes[0].strip() else DEFAULT_REMOTE
        prefix = f"refs/remotes/{remote}/"
        ref = self.run("symbolic_ref", f"{prefix}HEAD", ignore_error=True)
        if ref.startswith(prefix):
            return ref[len(prefix) :]
        return None

    def _default_by_convention(self, name: str) -> Callable[[], Optional[str]]:
        def strategy() -> Optional[str]:
            refs = self.run("for_each_ref", "--format=%(refname)", "refs/heads", "refs/remotes", ignore_error=True)
            refs = [ref.strip() for ref in refs.splitlines()]
            if f"refs/heads/{name}" in refs:
                return name
            for ref in refs:
                # refs/remotes/<remote>/<name>, remote names carry no slash
                parts = ref.split("/")
                if len(parts) == 4 and parts[1] == "remotes" and parts[3] == name:
                    return f"{parts[2]}/{name}"
            return None

        return strategy

    def default_branch(self) -> str:
        """Resolve the repository's primary integration branch.

        Tries the remote HEAD first, then a ``main`` and a ``master`` branch,
        and falls back to ``main``.
        """
        strategies = (
            self._default_from_remote_head,
            self._default_by_convention("main"),
            self._default_by_convention("master"),
        )
        for strategy in strategies:
            branch = strategy()
            if branch:
                return branch
        return DEFAULT_BRANCH

    def merged_branches(self) -> Probe[BranchInfo]:
        """Get local branches fully merged into the default branch."""
        current = self.current_branch()
        default = self.default_branch()
        try:
            output = self.run("branch", "--merged", default)
        except GitError as err:
            logger.debug("Could not list merged branches: %s", err)
            return Probe(error=str(err))

        return Probe(
            [
                BranchInfo(name)
                for name in _branch_names(output)
                if name not in (current, default) and not name.startswith("remotes/")
            ]
        )

    def last_commit_date(self, branch_name: str) -> datetime:
        """Get the committer date of a branch tip.

        Raises:
            GitError: If the branch does not exist or the date cannot be parsed
        """
        value = self.run("log", "-1", "--format=%ci", branch_name)
        try:
            return parse_commit_date(value)
        except ValueError as err:
            raise GitError(f"Unexpected commit date for {branch_name}: {value!r}") from err

    def stale_branches(self, days: int = 30, now: Optional[datetime] = None) -> Probe[BranchInfo]:
        """Get local branches without commits in the last ``days`` days.

        Args:
            days: Age threshold in days
            now: Reference time, defaults to the current time

        Returns:
            Stale branches, oldest first
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)
        current = self.current_branch()
        default = self.default_branch()
        try:
            output = self.run("branch")
        except GitError as err:
            logger.debug("Could not list branches: %s", err)
            return Probe(error=str(err))

        stale = []
        for name in _branch_names(output):
            if name in (current, default):
                continue
            try:
                last_commit = self.last_commit_date(name)
            except GitError as err:
                logger.debug("Skipping %s: %s", name, err)
                continue
            if is_stale(last_commit, cutoff):
                days_ago = (now - last_commit) // timedelta(days=1)
                stale.append(BranchInfo(name, days_ago=days_ago))

        stale.sort(key=lambda branch: branch.days_ago or 0, reverse=True)
        return Probe(stale)

    def gone_branches(self) -> Probe[BranchInfo]:
        """Get local branches whose upstream was deleted on the remote."""
        self.run("fetch", "--prune", ignore_error=True)
        current = self.current_branch()
        try:
            output = self.run("branch", "-vv")
        except GitError as err:
            logger.debug("Could not list tracking branches: %s", err)
            return Probe(error=str(err))

        gone = []
        for line in output.splitlines():
            if GONE_MARKER not in line:
                continue
            fields = strip_decoration(line).split()
            if fields and fields[0] != current:
                gone.append(BranchInfo(fields[0]))
        return Probe(gone)

    def large_objects(self, count: int = 10) -> Probe[LargeObject]:
        """Find the largest blobs reachable from any ref.

        git walks the history and reports object sizes; this only sorts.
        """
        try:
            listing = self.run("rev_list", "--objects", "--all")
        except GitError as err:
            logger.debug("Could not list objects: %s", err)
            return Probe(error=str(err))

        blobs = []
        for line in listing.splitlines():
            hexsha, _, path = line.strip().partition(" ")
            # Commits and root trees have no path
            if not path:
                continue
            try:
                _, type_name, size = self.repo.git.get_object_header(hexsha)
            except (GitCommandError, ValueError) as err:
                logger.debug("Skipping object %s: %s", hexsha, err)
                continue
            if isinstance(type_name, bytes):
                type_name = type_name.decode()
            if type_name == "blob":
                blobs.append(LargeObject(hexsha, int(size), path))

        blobs.sort(key=lambda blob: blob.size, reverse=True)
        return Probe(blobs[: max(count, 0)])

    def delete_branch(self, branch_name: str, force: bool = False) -> bool:
        """Delete a local branch. Returns True if successful."""
        try:
            self.run("branch", "-D" if force else "-d", branch_name)
        except GitError as err:
            logger.debug("Failed to delete branch %s: %s", branch_name, err)
            return False
        logger.info("Deleted branch %s", branch_name)
        return True

    def prune_remotes(self) -> None:
        """Remove remote-tracking refs that no longer exist on the remote.

        Raises:
            GitError: If the fetch fails
        """
        self.run("fetch", "--prune")
