"""Render build facts as build-step directives or as a Python constants module."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import List, Mapping, Optional

from buildstamp.constants import (
    DEFAULT_KEY_PREFIX,
    DIRECTIVE_PREFIX,
    ENV_DIRECTIVE,
    FACT_KEYS,
    LEGACY_CONSTANTS,
    RERUN_DIRECTIVE,
    VERSION_FILENAME,
    ConstantsFlags,
    selected_facts,
)
from buildstamp.errors import (
    HardDerivationError,
    HeadResolutionError,
    IncompleteFactsError,
    OutputWriteError,
)
from buildstamp.repository import HeadPointer

VERSION_FILE_HEADER = '"""Build-time constants generated by buildstamp. Do not edit."""\n'


def env_directive(key: str, value: str, key_prefix: str = DEFAULT_KEY_PREFIX) -> str:
    if "\r" in value or "\n" in value:
        raise HardDerivationError(key, "value contains a line break")
    return f"{DIRECTIVE_PREFIX}{ENV_DIRECTIVE}={key_prefix}{key}={value}"


def rerun_directive(path: Path) -> str:
    if "\r" in str(path) or "\n" in str(path):
        raise HeadResolutionError(f"Path contains a line break: {path!r}")
    return f"{DIRECTIVE_PREFIX}{RERUN_DIRECTIVE}={path}"


def render_directives(
    facts: Mapping[str, str],
    head: Optional[HeadPointer] = None,
    key_prefix: str = DEFAULT_KEY_PREFIX,
) -> List[str]:
    """Return the directive lines: facts in declaration order, rerun triggers last."""

    lines = [
        env_directive(key, facts[key], key_prefix) for key in FACT_KEYS if key in facts
    ]
    if head is not None:
        lines.extend(rerun_directive(path) for path in head.paths())
    return lines


def render_version_file(facts: Mapping[str, str], flags: ConstantsFlags) -> str:
    """Return Python source declaring one string constant per selected fact.

    Every selected fact must be present; a partial module is never produced.
    """

    selected = set(selected_facts(flags))
    wanted = [entry for entry in LEGACY_CONSTANTS if entry[1] in selected]
    missing = [key for _, key, _ in wanted if key not in facts]
    if missing:
        raise IncompleteFactsError(missing)

    blocks = [VERSION_FILE_HEADER]
    for name, key, comment in wanted:
        blocks.append(f"#: {comment}\n{name} = {json.dumps(facts[key])}\n")
    return "\n".join(blocks)


def write_version_file(text: str, out_dir: Path, filename: str = VERSION_FILENAME) -> Path:
    """Write ``text`` to ``out_dir/filename`` atomically and return the path."""

    target_dir = Path(out_dir)
    target = target_dir / filename
    tmp_name: Optional[str] = None
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".buildstamp-", suffix=".tmp", dir=str(target_dir))
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise OutputWriteError(f"Unable to write {target}: {exc}") from exc
    return target


__all__ = [
    "env_directive",
    "rerun_directive",
    "render_directives",
    "render_version_file",
    "write_version_file",
]
