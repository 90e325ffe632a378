"""
sessionpay/core/time.py

Clock helpers.

Protocol time is integer unix seconds (session start times, timeout
comparisons). Journal timestamps use the wire format
YYYY-MM-DDTHH:MM:SS.mmmZ (milliseconds, explicit Z).
"""

import time
from datetime import datetime, timezone


def unix_now() -> int:
    """Current UTC time as whole unix seconds."""
    return int(time.time())


def utc_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
