"""Clock helpers for build timestamps, honoring reproducible-build overrides."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional

_EPOCH_OVERRIDES = ("BUILDSTAMP_CLOCK_EPOCH", "SOURCE_DATE_EPOCH")


def _int_from_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_instant() -> datetime:
    """Return the instant to stamp into the build, as an aware UTC datetime.

    Preference order:
    1. BUILDSTAMP_CLOCK_EPOCH – purpose-built override used by CI/tests.
    2. SOURCE_DATE_EPOCH – industry-standard reproducible builds variable.
    3. Current system time.
    Values that are not integers or fall outside the supported date range
    are skipped.
    """

    for key in _EPOCH_OVERRIDES:
        value = _int_from_env(key)
        if value is None:
            continue
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            continue
    return datetime.now(timezone.utc)


def format_rfc3339(instant: datetime) -> str:
    """Format ``instant`` as RFC-3339 in UTC with microsecond precision.

    Naive datetimes are taken to be UTC already. The fractional part is always
    present, e.g. ``2018-08-09T15:15:57.282334+00:00``.
    """

    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).isoformat(timespec="microseconds")


def format_build_date(instant: datetime) -> str:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).date().isoformat()


__all__ = ["build_instant", "format_rfc3339", "format_build_date"]
