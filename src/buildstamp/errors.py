"""Exception hierarchy for buildstamp."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class BuildstampError(RuntimeError):
    """Base class for every error buildstamp reports to its caller."""


class ConfigurationError(BuildstampError):
    """Raised when required build environment settings are missing or invalid."""


class RepositoryError(BuildstampError):
    """Raised when git data cannot be obtained."""


class NoRepositoryError(RepositoryError):
    """Raised when the working directory is not inside a git checkout."""


class NoCommitsError(RepositoryError):
    """Raised when the repository exists but has no history yet."""


class CommandFailedError(RepositoryError):
    """Raised when a git command exits abnormally."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command) if command is not None else []
        self.returncode = returncode
        self.stderr = stderr


class DescribeUnavailableError(CommandFailedError):
    """Raised when ``git describe`` finds no matching tag."""


class IoFailureError(BuildstampError):
    """Raised when reading git metadata files or writing output fails."""


class HeadResolutionError(IoFailureError):
    """Raised when the HEAD file (or the ref it names) cannot be resolved."""


class OutputWriteError(IoFailureError):
    """Raised when the generated constants file cannot be written."""


class HardDerivationError(BuildstampError):
    """Raised when a fact cannot be derived and omission is not allowed."""

    def __init__(self, fact: str, reason: str) -> None:
        super().__init__(f"Unable to derive {fact}: {reason}")
        self.fact = fact
        self.reason = reason


class IncompleteFactsError(BuildstampError):
    """Raised when the legacy constants file would be missing selected facts."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            "Cannot render version file; missing facts: " + ", ".join(self.missing)
        )


__all__ = [
    "BuildstampError",
    "ConfigurationError",
    "RepositoryError",
    "NoRepositoryError",
    "NoCommitsError",
    "CommandFailedError",
    "DescribeUnavailableError",
    "IoFailureError",
    "HeadResolutionError",
    "OutputWriteError",
    "HardDerivationError",
    "IncompleteFactsError",
]
