# =============================================================================
# core/activity.py - Days-since-last-activity calculation
# =============================================================================

from datetime import datetime, timezone
from typing import Optional

from core.exceptions import ActivityUnavailableError
from core.models import AccountRecord, IdentitySnapshot

SECONDS_PER_DAY = 86400


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def last_activity(snapshot: IdentitySnapshot, record: AccountRecord) -> Optional[datetime]:
    """Most recent logon or sign-in; creation time only for never-used accounts"""
    stamps = [_as_utc(s) for s in (snapshot.directory_last_logon, snapshot.cloud_last_sign_in) if s]
    if stamps:
        return max(stamps)

    created = record.created or snapshot.created
    return _as_utc(created) if created else None


def inactivity_days(snapshot: IdentitySnapshot, record: AccountRecord,
                    now: Optional[datetime] = None) -> int:
    """Whole days (floor) between last activity and now"""
    winner = last_activity(snapshot, record)
    if winner is None:
        raise ActivityUnavailableError("Cannot determine last activity")

    now = _as_utc(now) if now else datetime.now(timezone.utc)
    elapsed = (now - winner).total_seconds()
    return max(0, int(elapsed // SECONDS_PER_DAY))
