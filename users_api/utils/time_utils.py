"""
users_api/utils/time_utils.py

Purpose: Time helpers

- Epoch timestamps for generated object keys
- Expiry calculations for upload grants
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional


def epoch_millis(now: Optional[float] = None) -> int:
    """
    Milliseconds since the Unix epoch.

    Args:
        now: seconds since the epoch; defaults to the current time
    """
    if now is None:
        now = time.time()
    return int(now * 1000)


def expires_at(expires_in: int, issued_at: Optional[datetime] = None) -> datetime:
    """
    UTC instant at which a grant issued at issued_at stops being valid.
    """
    issued_at = issued_at or datetime.now(timezone.utc)
    return issued_at + timedelta(seconds=expires_in)
