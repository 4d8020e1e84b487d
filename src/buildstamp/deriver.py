"""Turn a flag set plus repository and environment data into build facts."""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Callable, Dict, Optional

from buildstamp.constants import SEMVER_PREFIX, ConstantsFlags, selected_facts
from buildstamp.errors import HardDerivationError, RepositoryError
from buildstamp.repository import RepositoryInspector
from buildstamp.time_utils import build_instant, format_build_date, format_rfc3339

Facts = Dict[str, str]


def prefixed_version(version: str) -> str:
    version = version.strip()
    if version.startswith(SEMVER_PREFIX):
        return version
    return f"{SEMVER_PREFIX}{version}"


class FactDeriver:
    """Compute the fact mapping for one build step invocation.

    Git failures for SHA, SHA_SHORT and COMMIT_DATE (and a missing target
    triple) drop the fact and record the reason in :attr:`omitted`; with
    ``strict`` they raise :class:`HardDerivationError` instead. The semver
    facts fall back to the package version and only fail when that is
    missing too.
    """

    def __init__(
        self,
        flags: ConstantsFlags,
        inspector: RepositoryInspector,
        package_version: Optional[str] = None,
        target_triple: Optional[str] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        strict: bool = False,
    ) -> None:
        self.flags = flags
        self.inspector = inspector
        self.package_version = package_version.strip() if package_version else None
        self.target_triple = target_triple
        self.clock = clock or build_instant
        self.strict = strict
        self.omitted: Dict[str, str] = {}

    def derive(self) -> Facts:
        self.omitted = {}
        facts: Facts = {}
        selected = selected_facts(self.flags)
        instant: Optional[datetime] = None
        if "BUILD_TIMESTAMP" in selected or "BUILD_DATE" in selected:
            instant = self.clock()

        for key in selected:
            if key == "BUILD_TIMESTAMP" and instant is not None:
                facts[key] = format_rfc3339(instant)
            elif key == "BUILD_DATE" and instant is not None:
                facts[key] = format_build_date(instant)
            elif key == "SHA":
                self._collect(facts, key, self.inspector.commit_sha)
            elif key == "SHA_SHORT":
                self._collect(facts, key, self.inspector.commit_sha_short)
            elif key == "COMMIT_DATE":
                self._collect(facts, key, self.inspector.commit_date)
            elif key == "TARGET_TRIPLE":
                if self.target_triple:
                    facts[key] = self.target_triple
                else:
                    self._omit(key, "target triple not provided by the build environment")
            elif key == "SEMVER":
                facts[key] = self._semver(key, lightweight=False)
            elif key == "SEMVER_LIGHTWEIGHT":
                facts[key] = self._semver(key, lightweight=True)
        return facts

    def _collect(self, facts: Facts, key: str, source: Callable[[], str]) -> None:
        try:
            facts[key] = source()
        except RepositoryError as exc:
            self._omit(key, str(exc))

    def _omit(self, key: str, reason: str) -> None:
        if self.strict:
            raise HardDerivationError(key, reason)
        self.omitted[key] = reason

    def _semver(self, key: str, *, lightweight: bool) -> str:
        if self.flags.contains(ConstantsFlags.SEMVER_FROM_CARGO_PKG):
            if not self.package_version:
                raise HardDerivationError(key, "package version not provided")
            return prefixed_version(self.package_version)

        try:
            return self.inspector.describe(lightweight=lightweight)
        except RepositoryError as exc:
            if not self.package_version:
                raise HardDerivationError(
                    key, f"git describe failed ({exc}) and no package version was provided"
                ) from exc
            return prefixed_version(self.package_version)


def report_omissions(omitted: Dict[str, str], stream=None) -> None:
    out = stream or sys.stderr
    for key, reason in omitted.items():
        print(f"buildstamp: {key} omitted ({reason})", file=out)


__all__ = ["Facts", "FactDeriver", "prefixed_version", "report_omissions"]
