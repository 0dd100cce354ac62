"""Injectable time source used by pricing and booking timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """Return a clock frozen at `moment` for reproducible pricing."""

    def _now() -> datetime:
        return moment

    return _now
