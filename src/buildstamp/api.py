"""Entry points for build scripts."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple

from buildstamp.config import BuildEnvironment
from buildstamp.constants import ConstantsFlags
from buildstamp.deriver import FactDeriver, Facts, report_omissions
from buildstamp.emitter import render_directives, render_version_file, write_version_file
from buildstamp.errors import ConfigurationError
from buildstamp.repository import GitRepositoryInspector, RepositoryInspector, resolve_head


def _deriver(
    flags: ConstantsFlags,
    env: BuildEnvironment,
    inspector: Optional[RepositoryInspector],
) -> FactDeriver:
    if inspector is None:
        inspector = GitRepositoryInspector(env.working_dir, timeout=env.git_timeout)
    return FactDeriver(
        flags,
        inspector,
        package_version=env.package_version,
        target_triple=env.target_triple,
        strict=env.strict,
    )


def derive_facts(
    flags: Optional[ConstantsFlags] = None,
    env: Optional[BuildEnvironment] = None,
    inspector: Optional[RepositoryInspector] = None,
) -> Tuple[Facts, Dict[str, str]]:
    """Return the fact mapping and the omitted facts with their reasons."""

    flags = ConstantsFlags.all() if flags is None else flags
    env = env or BuildEnvironment.from_env()
    deriver = _deriver(flags, env, inspector)
    facts = deriver.derive()
    return facts, dict(deriver.omitted)


def build_key_lines(
    flags: Optional[ConstantsFlags] = None,
    env: Optional[BuildEnvironment] = None,
    inspector: Optional[RepositoryInspector] = None,
) -> Tuple[List[str], Dict[str, str]]:
    flags = ConstantsFlags.all() if flags is None else flags
    env = env or BuildEnvironment.from_env()
    facts, omitted = derive_facts(flags, env, inspector)
    head = None
    if flags.contains(ConstantsFlags.REBUILD_ON_HEAD_CHANGE):
        head = resolve_head(env.working_dir)
    return render_directives(facts, head, env.key_prefix), omitted


def generate_build_keys(
    flags: Optional[ConstantsFlags] = None,
    env: Optional[BuildEnvironment] = None,
    inspector: Optional[RepositoryInspector] = None,
    stream: Optional[TextIO] = None,
) -> List[str]:
    """Derive facts and print the directive stream for the host build.

    Nothing is written unless every step succeeds. Omitted facts are reported
    on stderr.
    """

    lines, omitted = build_key_lines(flags, env, inspector)
    report_omissions(omitted)
    out = stream or sys.stdout
    if lines:
        out.write("\n".join(lines) + "\n")
        out.flush()
    return lines


def generate_version_file(
    flags: Optional[ConstantsFlags] = None,
    env: Optional[BuildEnvironment] = None,
    inspector: Optional[RepositoryInspector] = None,
) -> Path:
    """Write the legacy constants module into the configured output directory."""

    flags = ConstantsFlags.all() if flags is None else flags
    env = env or BuildEnvironment.from_env()
    if env.out_dir is None:
        raise ConfigurationError(
            "No output directory configured; set BUILDSTAMP_OUT_DIR or OUT_DIR, or pass --out-dir."
        )
    facts, _ = derive_facts(flags, env, inspector)
    text = render_version_file(facts, flags)
    return write_version_file(text, env.out_dir)


__all__ = ["derive_facts", "build_key_lines", "generate_build_keys", "generate_version_file"]
