"""Build-time provenance facts for the compile step.

Typical build script usage::

    from buildstamp import ConstantsFlags, generate_build_keys

    flags = ConstantsFlags.all().toggle(ConstantsFlags.SEMVER_FROM_CARGO_PKG)
    generate_build_keys(flags)

Each derived fact is printed as ``cargo:rustc-env=VERGEN_<FACT>=<value>``.
"""

from buildstamp.api import derive_facts, generate_build_keys, generate_version_file
from buildstamp.config import BuildEnvironment
from buildstamp.constants import ConstantsFlags
from buildstamp.errors import BuildstampError

__version__ = "0.1.0"

__all__ = [
    "BuildEnvironment",
    "BuildstampError",
    "ConstantsFlags",
    "derive_facts",
    "generate_build_keys",
    "generate_version_file",
]
