from __future__ import annotations

import os
from typing import Iterable, Optional

_TRUTHY = {"1", "true", "yes", "on"}


def env_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


def env_override(*names: str) -> Optional[str]:
    """Return the first non-blank value among ``names``, stripped."""

    for name in names:
        value = os.getenv(name)
        if value is None:
            continue
        trimmed = value.strip()
        if trimmed:
            return trimmed
    return None


def env_float(names: Iterable[str]) -> Optional[float]:
    value = env_override(*names)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def is_strict_mode() -> bool:
    return env_truthy(os.getenv("BUILDSTAMP_STRICT"))
