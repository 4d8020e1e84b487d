"""Command line interface for buildstamp."""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import click

from buildstamp.api import build_key_lines, derive_facts, generate_version_file
from buildstamp.config import BuildEnvironment
from buildstamp.constants import FLAG_NAMES, ConstantsFlags
from buildstamp.errors import BuildstampError

_FLAG_CHOICE = click.Choice(FLAG_NAMES, case_sensitive=False)


def _environment_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--only", "only", multiple=True, type=_FLAG_CHOICE,
                     help="Start from an empty flag set and enable just these flags."),
        click.option("--enable", "enable", multiple=True, type=_FLAG_CHOICE,
                     help="Enable a flag on top of the base set."),
        click.option("--disable", "disable", multiple=True, type=_FLAG_CHOICE,
                     help="Disable a flag on top of the base set."),
        click.option("--package-version", default=None,
                     help="Declared package version (default: BUILDSTAMP_PKG_VERSION or CARGO_PKG_VERSION)."),
        click.option("--target", "target_triple", default=None,
                     help="Target triple (default: BUILDSTAMP_TARGET or TARGET)."),
        click.option("--repo", "working_dir", default=None,
                     type=click.Path(file_okay=False, path_type=Path),
                     help="Directory inside the repository to inspect."),
        click.option("--strict", is_flag=True,
                     help="Fail instead of omitting facts that cannot be derived."),
        click.option("--git-timeout", type=click.FloatRange(min=0, min_open=True), default=None,
                     help="Seconds to wait for each git command."),
        click.option("--key-prefix", default=None,
                     help="Prefix for emitted variable names (default: VERGEN_)."),
        click.option("--quiet", is_flag=True, help="Suppress omission diagnostics."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_flags(
    only: Iterable[str] = (),
    enable: Iterable[str] = (),
    disable: Iterable[str] = (),
) -> ConstantsFlags:
    only = tuple(only)
    flags = ConstantsFlags.from_names(only) if only else ConstantsFlags.all()
    flags |= ConstantsFlags.from_names(enable)
    return flags & ~ConstantsFlags.from_names(disable)


def _prepare(options: dict) -> Tuple[ConstantsFlags, BuildEnvironment, bool]:
    flags = resolve_flags(options.pop("only"), options.pop("enable"), options.pop("disable"))
    quiet = options.pop("quiet")
    options["strict"] = options.pop("strict") or None
    out_dir: Optional[Path] = options.pop("out_dir", None)
    env = BuildEnvironment.from_env().with_overrides(out_dir=out_dir, **options)
    return flags, env, quiet


def _echo_omissions(omitted: Dict[str, str]) -> None:
    for key, reason in omitted.items():
        click.echo(f"buildstamp: {key} omitted ({reason})", err=True)


def _reporting_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except BuildstampError as exc:
            click.echo(f"buildstamp: {exc}", err=True)
            raise click.exceptions.Exit(2)

    return wrapper


@click.group()
@click.version_option(package_name="buildstamp")
def cli() -> None:
    """Generate build provenance facts from git and the build environment."""


@cli.command()
@_environment_options
@_reporting_errors
def keys(**options: Any) -> None:
    """Print build-step directives for every derived fact."""

    flags, env, quiet = _prepare(options)
    lines, omitted = build_key_lines(flags, env)
    if not quiet:
        _echo_omissions(omitted)
    for line in lines:
        click.echo(line)


@cli.command("version-file")
@_environment_options
@click.option("--out-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory for version.py (default: BUILDSTAMP_OUT_DIR or OUT_DIR).")
@_reporting_errors
def version_file(**options: Any) -> None:
    """Write version.py with the selected facts as string constants."""

    flags, env, _ = _prepare(options)
    path = generate_version_file(flags, env)
    click.echo(str(path), err=True)


@cli.command()
@_environment_options
@_reporting_errors
def show(**options: Any) -> None:
    """Print the derived facts as JSON."""

    flags, env, quiet = _prepare(options)
    facts, omitted = derive_facts(flags, env)
    if not quiet:
        _echo_omissions(omitted)
    click.echo(json.dumps(facts, indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
