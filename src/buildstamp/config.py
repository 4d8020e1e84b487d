"""Build environment settings consumed by the generator."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from buildstamp.constants import DEFAULT_KEY_PREFIX
from buildstamp.env_flags import env_float, env_override, is_strict_mode

PACKAGE_VERSION_VARS = ("BUILDSTAMP_PKG_VERSION", "CARGO_PKG_VERSION")
TARGET_VARS = ("BUILDSTAMP_TARGET", "TARGET")
OUT_DIR_VARS = ("BUILDSTAMP_OUT_DIR", "OUT_DIR")
GIT_TIMEOUT_VARS = ("BUILDSTAMP_GIT_TIMEOUT",)
KEY_PREFIX_VARS = ("BUILDSTAMP_KEY_PREFIX",)


@dataclass(frozen=True)
class BuildEnvironment:
    """What the host build reports about the package being built."""

    package_version: Optional[str] = None
    target_triple: Optional[str] = None
    out_dir: Optional[Path] = None
    working_dir: Path = dataclasses.field(default_factory=Path.cwd)
    strict: bool = False
    git_timeout: Optional[float] = None
    key_prefix: str = DEFAULT_KEY_PREFIX

    @classmethod
    def from_env(cls) -> "BuildEnvironment":
        out_dir = env_override(*OUT_DIR_VARS)
        timeout = env_float(GIT_TIMEOUT_VARS)
        return cls(
            package_version=env_override(*PACKAGE_VERSION_VARS),
            target_triple=env_override(*TARGET_VARS),
            out_dir=Path(out_dir) if out_dir else None,
            working_dir=Path(os.getcwd()),
            strict=is_strict_mode(),
            git_timeout=timeout if timeout and timeout > 0 else None,
            key_prefix=env_override(*KEY_PREFIX_VARS) or DEFAULT_KEY_PREFIX,
        )

    def with_overrides(self, **overrides: Any) -> "BuildEnvironment":
        """Return a copy with every non-None override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)


__all__ = ["BuildEnvironment"]
