"""Shared constants and the flag set selecting which build facts are generated."""

from __future__ import annotations

import enum
import functools
import operator
from typing import Iterable, Tuple


class ConstantsFlags(enum.Flag):
    """Toggles for each generated fact plus two policy bits.

    ``SEMVER_FROM_CARGO_PKG`` forces the declared package version for the
    semver facts. ``REBUILD_ON_HEAD_CHANGE`` adds rerun directives for the
    git HEAD file and the ref it points at.
    """

    BUILD_TIMESTAMP = 0x0001
    BUILD_DATE = 0x0002
    SHA = 0x0004
    SHA_SHORT = 0x0008
    COMMIT_DATE = 0x0010
    TARGET_TRIPLE = 0x0020
    SEMVER = 0x0040
    SEMVER_LIGHTWEIGHT = 0x0080
    SEMVER_FROM_CARGO_PKG = 0x0100
    REBUILD_ON_HEAD_CHANGE = 0x0200

    @classmethod
    def all(cls) -> "ConstantsFlags":
        return functools.reduce(operator.or_, cls, cls(0))

    @classmethod
    def empty(cls) -> "ConstantsFlags":
        return cls(0)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ConstantsFlags":
        flags = cls(0)
        for name in names:
            normalized = name.strip().upper().replace("-", "_")
            try:
                flags |= cls[normalized]
            except KeyError:
                raise ValueError(f"Unknown flag: {name}") from None
        return flags

    def toggle(self, flag: "ConstantsFlags") -> "ConstantsFlags":
        return self ^ flag

    def contains(self, flag: "ConstantsFlags") -> bool:
        return (self & flag) == flag


FLAG_NAMES: Tuple[str, ...] = tuple(member.name for member in ConstantsFlags)

# Fact keys in emission order.
FACT_FLAGS: Tuple[Tuple[str, ConstantsFlags], ...] = (
    ("BUILD_TIMESTAMP", ConstantsFlags.BUILD_TIMESTAMP),
    ("BUILD_DATE", ConstantsFlags.BUILD_DATE),
    ("SHA", ConstantsFlags.SHA),
    ("SHA_SHORT", ConstantsFlags.SHA_SHORT),
    ("COMMIT_DATE", ConstantsFlags.COMMIT_DATE),
    ("TARGET_TRIPLE", ConstantsFlags.TARGET_TRIPLE),
    ("SEMVER", ConstantsFlags.SEMVER),
    ("SEMVER_LIGHTWEIGHT", ConstantsFlags.SEMVER_LIGHTWEIGHT),
)
FACT_KEYS: Tuple[str, ...] = tuple(key for key, _ in FACT_FLAGS)

# (constant name, fact key, comment) in the fixed legacy file order.
LEGACY_CONSTANTS: Tuple[Tuple[str, str, str], ...] = (
    ("COMMIT_SHA", "SHA", "Commit SHA"),
    ("COMMIT_SHA_SHORT", "SHA_SHORT", "Short commit SHA"),
    ("COMMIT_DATE", "COMMIT_DATE", "Commit date"),
    ("TARGET_TRIPLE", "TARGET_TRIPLE", "Target triple"),
    ("SEMVER", "SEMVER", "Semantic version"),
    ("SEMVER_LIGHTWEIGHT", "SEMVER_LIGHTWEIGHT", "Semantic version (lightweight tags)"),
    ("BUILD_TIMESTAMP", "BUILD_TIMESTAMP", "Build timestamp (UTC)"),
    ("BUILD_DATE", "BUILD_DATE", "Build date (UTC)"),
)

DIRECTIVE_PREFIX = "cargo:"
ENV_DIRECTIVE = "rustc-env"
RERUN_DIRECTIVE = "rerun-if-changed"
DEFAULT_KEY_PREFIX = "VERGEN_"
VERSION_FILENAME = "version.py"
SEMVER_PREFIX = "v"


def selected_facts(flags: ConstantsFlags) -> Tuple[str, ...]:
    """Return the fact keys selected by ``flags`` in emission order."""

    selected = []
    for key, flag in FACT_FLAGS:
        if flags.contains(flag):
            selected.append(key)
        elif key == "SEMVER" and flags.contains(ConstantsFlags.SEMVER_FROM_CARGO_PKG):
            selected.append(key)
    return tuple(selected)


__all__ = [
    "ConstantsFlags",
    "FLAG_NAMES",
    "FACT_FLAGS",
    "FACT_KEYS",
    "LEGACY_CONSTANTS",
    "DIRECTIVE_PREFIX",
    "ENV_DIRECTIVE",
    "RERUN_DIRECTIVE",
    "DEFAULT_KEY_PREFIX",
    "VERSION_FILENAME",
    "SEMVER_PREFIX",
    "selected_facts",
]
