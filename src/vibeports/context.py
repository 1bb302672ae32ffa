"""Derive project and branch keys from a git working copy."""

import hashlib
import re
import subprocess
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

NO_GIT_BRANCH = "nogit"
SLUG_PG_BASE_LENGTH = 56


@dataclass
class GitKeys:
    """Keys derived from the current git checkout."""

    project: str
    branch: str
    slug: str  # project-branch, lowercase, non-alphanumerics as "_"
    slug_pg: str  # slug safe for a database name: <=56 chars + "_" + 6 hex

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def derive_git_keys(path: Path | None = None) -> GitKeys:
    """Derive (project, branch) for a directory.

    project is taken from:
    1. The origin remote URL (repository name without ``.git``)
    2. The repository top-level directory name
    3. The directory name itself (not a git repo)

    branch is the current branch, the short commit hash on a detached HEAD,
    or ``"nogit"`` outside a repository.

    Args:
        path: Directory to inspect. Defaults to current working directory.

    Returns:
        GitKeys for the directory
    """
    path = (path or Path.cwd()).resolve()

    project = ""
    remote = _git(path, "remote", "get-url", "origin")
    if remote:
        project = _extract_repo_name(remote)
    if not project:
        toplevel = _git(path, "rev-parse", "--show-toplevel")
        if toplevel:
            project = Path(toplevel).name
    if not project:
        project = path.name

    branch = (
        _git(path, "symbolic-ref", "--short", "-q", "HEAD")
        or _git(path, "rev-parse", "--short", "HEAD")
        or NO_GIT_BRANCH
    )

    slug = make_slug(project, branch)
    return GitKeys(project=project, branch=branch, slug=slug, slug_pg=make_slug_pg(slug))


def make_slug(project: str, branch: str) -> str:
    """Build a lowercase identifier from project and branch.

    Examples:
        my_repo, feat/x -> my_repo_feat_x
    """
    slug = re.sub(r"[^a-z0-9]", "_", f"{project}-{branch}".lower())
    slug = re.sub(r"_+", "_", slug)
    return slug.strip("_")


def make_slug_pg(slug: str) -> str:
    """Build a bounded, collision-resistant variant of a slug.

    Truncated to 56 characters and suffixed with the first 6 hex digits of
    the slug's SHA-1, so it fits PostgreSQL's 63-character identifier limit.
    """
    digest = hashlib.sha1(slug.encode()).hexdigest()[:6]
    return f"{slug[:SLUG_PG_BASE_LENGTH]}_{digest}"


def _git(path: Path, *args: str) -> str | None:
    """Run a git command and return its trimmed output.

    Returns:
        stdout, or None on failure, empty output, or no git
    """
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=path,
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.SubprocessError, FileNotFoundError):
        pass
    return None


def _extract_repo_name(remote_url: str) -> str:
    """Extract repository name from remote URL.

    Args:
        remote_url: Git remote URL

    Returns:
        Repository name

    Examples:
        git@github.com:user/repo.git -> repo
        https://github.com/user/repo.git -> repo
        https://github.com/user/repo -> repo
    """
    name = remote_url.rstrip("/").split("/")[-1].split(":")[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name
