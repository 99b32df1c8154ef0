from __future__ import annotations

import datetime
import sys


def iso_timestamp(now: datetime.datetime | None = None) -> str:
    """UTC timestamp with millisecond precision and a ``Z`` suffix (``2024-05-01T12:00:00.000Z``)."""
    now = now or datetime.datetime.now(datetime.UTC)
    now = now.astimezone(datetime.UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def check_python_version():
    if sys.version_info < (3, 12):
        msg = f"Python 3.12 or newer is required, running {sys.version.split()[0]}"
        raise SystemExit(msg)
