"""
Tracking ID generation.

Format: PRCL-YYYYMMDD-XXXXXX (UTC date, 6 upper-case hex characters).
"""

import re
import secrets
from datetime import datetime, timezone
from typing import Optional

TRACKING_PREFIX = "PRCL"
TRACKING_ID_PATTERN = re.compile(r"^PRCL-\d{8}-[0-9A-F]{6}$")


def generate_tracking_id(now: Optional[datetime] = None) -> str:
    """
    Generate a tracking id for a freshly paid parcel.

    The suffix comes from `secrets`, so ids are not guessable from one another.
    Uniqueness is still enforced by the parcels.tracking_id constraint.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"{TRACKING_PREFIX}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def is_valid_tracking_id(value: str) -> bool:
    return bool(TRACKING_ID_PATTERN.match(value))
