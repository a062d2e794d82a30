# storefront/utils/timestamps.py
import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("storefront.utils")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_dt(v: Any) -> Optional[datetime]:
    """
    Firestore Timestamp | str (ISO/ISOZ) | datetime(aware/naive) | None -> aware UTC datetime
    Naive values are taken to be UTC.
    """
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.astimezone(timezone.utc) if v.tzinfo else v.replace(tzinfo=timezone.utc)
    # Firestore Timestamp objects support to_datetime()
    if hasattr(v, "to_datetime"):
        return coerce_dt(v.to_datetime())
    if isinstance(v, str):
        s = v.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return coerce_dt(datetime.fromisoformat(s))
        except ValueError as exc:
            logger.debug("ISO parse failed for %r: %s", v, exc)
            return None
    return None


def sort_key(v: Any) -> datetime:
    """Like coerce_dt but never None, so rows without timestamps sort oldest."""
    return coerce_dt(v) or EPOCH
