"""Local UTC offset embedded in vfat mount options"""

from datetime import datetime
from typing import Optional

from dateutil import tz


def current_utc_offset_minutes(now: Optional[datetime] = None) -> int:
    """
    Return the local UTC offset in minutes, truncated toward zero.

    The vfat driver adds this offset to on-disk local timestamps to get
    epoch time. It only holds for the instant it was computed, so it has to
    be recomputed on every mount.

    Args:
        now: Aware datetime to read the offset from (defaults to local now)

    Returns:
        Signed offset in minutes (0 when no zone data is available)
    """
    if now is None:
        now = datetime.now(tz.tzlocal())

    offset = now.utcoffset()
    if offset is None:
        return 0

    return int(offset.total_seconds() / 60)
