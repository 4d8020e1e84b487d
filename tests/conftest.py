"""Global pytest configuration for buildstamp tests."""

from __future__ import annotations

import shutil
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC_ROOT = _REPO_ROOT / "src"

# Allow running the suite from a checkout without installing the package.
if str(_SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(_SRC_ROOT))
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

_ENV_VARS = (
    "BUILDSTAMP_PKG_VERSION",
    "CARGO_PKG_VERSION",
    "BUILDSTAMP_TARGET",
    "TARGET",
    "BUILDSTAMP_OUT_DIR",
    "OUT_DIR",
    "BUILDSTAMP_STRICT",
    "BUILDSTAMP_GIT_TIMEOUT",
    "BUILDSTAMP_KEY_PREFIX",
    "BUILDSTAMP_CLOCK_EPOCH",
    "SOURCE_DATE_EPOCH",
)

# The environment isolation fixture is function scoped but safe to share across examples.
settings.register_profile("buildstamp", suppress_health_check=[HealthCheck.function_scoped_fixture])
settings.load_profile("buildstamp")

FIXED_INSTANT = datetime(2018, 8, 9, 15, 15, 57, 282334, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_build_environment(monkeypatch):
    """Keep the host's build variables from leaking into tests."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_INSTANT


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
        env={
            "GIT_AUTHOR_NAME": "Build Bot",
            "GIT_AUTHOR_EMAIL": "bot@example.com",
            "GIT_COMMITTER_NAME": "Build Bot",
            "GIT_COMMITTER_EMAIL": "bot@example.com",
            "GIT_AUTHOR_DATE": "2018-08-08T12:00:00+00:00",
            "GIT_COMMITTER_DATE": "2018-08-08T12:00:00+00:00",
            "GIT_CONFIG_NOSYSTEM": "1",
            "HOME": str(cwd),
            "PATH": _git_path(),
        },
    )
    return result.stdout.strip()


def _git_path() -> str:
    git = shutil.which("git")
    return str(Path(git).parent) if git else ""


@pytest.fixture
def git_repo(tmp_path):
    """Create a throwaway repository; returns a helper running git inside it."""

    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")

    class Repo:
        path = repo

        def git(self, *args: str) -> str:
            return _git(repo, *args)

        def commit(self, message: str = "initial") -> str:
            (repo / "README.md").write_text(message + "\n", encoding="utf-8")
            self.git("add", "README.md")
            self.git("commit", "-q", "-m", message)
            return self.git("rev-parse", "HEAD")

    return Repo()
