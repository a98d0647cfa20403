from __future__ import annotations
import datetime
from typing import Optional

LOCAL_TZ    = datetime.datetime.now().astimezone().tzinfo
APPLE_EPOCH = datetime.datetime(2001, 1, 1, tzinfo=datetime.timezone.utc)
APPLE_EPOCH_OFFSET = 978307200  # seconds between 1970-01-01 and 2001-01-01

def apple_time_to_dt(raw: Optional[int|float]) -> Optional[datetime.datetime]:
    """chat.db stores `message.date` as nanoseconds since 2001-01-01 UTC."""
    if raw is None: return None
    try: val = int(raw)
    except (TypeError, ValueError): return None
    unix_seconds = val / 1_000_000_000 + APPLE_EPOCH_OFFSET
    return datetime.datetime.fromtimestamp(unix_seconds, tz=datetime.timezone.utc).astimezone(LOCAL_TZ)

def dt_to_iso(dt: Optional[datetime.datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None
