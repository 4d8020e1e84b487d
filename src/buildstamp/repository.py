"""Git access: commit data via the git CLI and HEAD resolution via the filesystem."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from buildstamp.errors import (
    CommandFailedError,
    DescribeUnavailableError,
    HeadResolutionError,
    NoCommitsError,
    NoRepositoryError,
)

CommandRunner = Callable[[Sequence[str], Path, Optional[float]], "subprocess.CompletedProcess[str]"]

_NO_REPOSITORY_MARKERS = ("not a git repository",)
_NO_COMMITS_MARKERS = (
    "does not have any commits",
    "unknown revision",
    "bad default revision",
    "not a valid object name",
    "needed a single revision",
)
_NO_TAG_MARKERS = (
    "no names found",
    "no annotated tags can describe",
    "no tags can describe",
    "cannot describe",
)


def run_git(args: Sequence[str], cwd: Path, timeout: Optional[float]) -> "subprocess.CompletedProcess[str]":
    env = dict(os.environ)
    env["LC_ALL"] = "C"
    return subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env,
        check=False,
    )


class RepositoryInspector:
    """Source of raw commit data. Every call may hit the repository again."""

    name = "base"

    def commit_sha(self) -> str:
        raise NotImplementedError

    def commit_sha_short(self) -> str:
        raise NotImplementedError

    def commit_date(self) -> str:
        raise NotImplementedError

    def describe(self, lightweight: bool) -> str:
        raise NotImplementedError


class GitRepositoryInspector(RepositoryInspector):
    name = "git"

    def __init__(
        self,
        working_dir: Optional[Path] = None,
        *,
        timeout: Optional[float] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.working_dir = Path(working_dir) if working_dir is not None else Path.cwd()
        self.timeout = timeout
        self._runner = runner or run_git

    def commit_sha(self) -> str:
        return self._git(["rev-parse", "HEAD"])

    def commit_sha_short(self) -> str:
        return self._git(["rev-parse", "--short", "HEAD"])

    def commit_date(self) -> str:
        return self._git(["log", "--pretty=format:%ad", "-n1", "--date=short"])

    def describe(self, lightweight: bool) -> str:
        args = ["describe", "--tags"] if lightweight else ["describe"]
        return self._git(args, describe=True)

    def _git(self, args: List[str], *, describe: bool = False) -> str:
        command = ["git", *args]
        if not self.working_dir.is_dir():
            raise NoRepositoryError(f"Working directory does not exist: {self.working_dir}")
        try:
            result = self._runner(args, self.working_dir, self.timeout)
        except FileNotFoundError as exc:
            raise CommandFailedError(f"git executable not found: {exc}", command=command) from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandFailedError(
                f"{' '.join(command)} timed out after {self.timeout}s", command=command
            ) from exc
        except OSError as exc:
            raise CommandFailedError(
                f"Unable to run {' '.join(command)}: {exc}", command=command
            ) from exc

        stdout = (result.stdout or "").strip()
        if result.returncode == 0:
            if not stdout:
                raise CommandFailedError(
                    f"{' '.join(command)} produced no output", command=command, returncode=0
                )
            return stdout.splitlines()[0].strip()

        stderr = (result.stderr or "").strip()
        raise _classify_failure(command, result.returncode, stderr, describe=describe)


def _classify_failure(
    command: Sequence[str], returncode: int, stderr: str, *, describe: bool
) -> Exception:
    lowered = stderr.lower()
    detail = stderr.splitlines()[-1] if stderr else f"exit status {returncode}"
    if any(marker in lowered for marker in _NO_REPOSITORY_MARKERS):
        return NoRepositoryError(detail)
    if any(marker in lowered for marker in _NO_COMMITS_MARKERS):
        return NoCommitsError(detail)
    if describe and any(marker in lowered for marker in _NO_TAG_MARKERS):
        return DescribeUnavailableError(
            detail, command=command, returncode=returncode, stderr=stderr
        )
    return CommandFailedError(
        f"{' '.join(command)} failed: {detail}",
        command=command,
        returncode=returncode,
        stderr=stderr,
    )


@dataclass(frozen=True)
class HeadPointer:
    head_path: Path
    ref_path: Optional[Path] = None

    def paths(self) -> List[Path]:
        paths = [self.head_path]
        if self.ref_path is not None:
            paths.append(self.ref_path)
        return paths


def find_git_dir(start: Path) -> Path:
    """Return the git directory for the checkout containing ``start``.

    A ``.git`` file (worktrees, submodules) is followed through its
    ``gitdir:`` line.
    """

    current = Path(start).resolve()
    for candidate in (current, *current.parents):
        dotgit = candidate / ".git"
        if dotgit.is_dir():
            return dotgit
        if dotgit.is_file():
            return _follow_gitdir_file(dotgit)
    raise HeadResolutionError(f"No git repository found at or above {current}")


def _follow_gitdir_file(dotgit: Path) -> Path:
    try:
        contents = dotgit.read_text(encoding="utf-8")
    except OSError as exc:
        raise HeadResolutionError(f"Unable to read {dotgit}: {exc}") from exc
    for line in contents.splitlines():
        if line.startswith("gitdir:"):
            target = Path(line[len("gitdir:"):].strip())
            if not target.is_absolute():
                target = (dotgit.parent / target).resolve()
            return target
    raise HeadResolutionError(f"{dotgit} does not contain a gitdir line")


def _common_dir(git_dir: Path) -> Path:
    # Linked worktrees keep branch refs in the main repository's git dir.
    commondir = git_dir / "commondir"
    if not commondir.is_file():
        return git_dir
    try:
        target = Path(commondir.read_text(encoding="utf-8").strip())
    except OSError as exc:
        raise HeadResolutionError(f"Unable to read {commondir}: {exc}") from exc
    if not target.is_absolute():
        target = (git_dir / target).resolve()
    return target


def resolve_head(start: Path) -> HeadPointer:
    """Locate HEAD and, when it is a symbolic ref, the ref file it names."""

    git_dir = find_git_dir(start)
    head_path = git_dir / "HEAD"
    try:
        contents = head_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise HeadResolutionError(f"Unable to read {head_path}: {exc}") from exc

    if not contents.startswith("ref:"):
        return HeadPointer(head_path=head_path)
    ref = contents[len("ref:"):].strip()
    if not ref:
        raise HeadResolutionError(f"{head_path} contains an empty ref")
    return HeadPointer(head_path=head_path, ref_path=_common_dir(git_dir) / ref)


__all__ = [
    "CommandRunner",
    "RepositoryInspector",
    "GitRepositoryInspector",
    "HeadPointer",
    "find_git_dir",
    "resolve_head",
    "run_git",
]
