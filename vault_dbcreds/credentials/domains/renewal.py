"""Renewal window policy for database credential leases.

Decides, from locally stamped timestamps only, whether a lease should be
replaced by a freshly issued one. Vault is never asked for the remaining TTL.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from .models import Lease

logger = logging.getLogger(__name__)

RENEWAL_BUFFER = timedelta(minutes=5)

RFC3339_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))",
    re.ASCII,
)


class RenewalWindow(Enum):
    """How the window around a lease's expiry is computed.

    LITERAL keeps the historical comparisons: a lease is only due when its
    expiry lands exactly on now - buffer, so in practice it never is.
    SYMMETRIC reports a lease as due from buffer before expiry until buffer
    after it.
    """
    LITERAL = "literal"
    SYMMETRIC = "symmetric"


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC string with microsecond precision."""
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp.

    Only the full date-time form is accepted: 'T' separator, two-digit
    fields, optional fractional seconds and a mandatory 'Z' or +hh:mm offset.

    Raises:
        ValueError: If the value is malformed or carries no UTC offset
    """
    match = RFC3339_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"timestamp {value!r} is not RFC 3339")

    year, month, day, hour, minute, second, fraction, zulu, sign, off_hours, off_minutes = match.groups()

    if zulu:
        tz = timezone.utc
    else:
        if int(off_minutes) > 59:
            raise ValueError(f"timestamp {value!r} has an invalid UTC offset")
        offset = timedelta(hours=int(off_hours), minutes=int(off_minutes))
        tz = timezone(-offset if sign == "-" else offset)

    # digits past microseconds are dropped
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))

    return datetime(
        int(year), int(month), int(day),
        int(hour), int(minute), int(second),
        microsecond, tzinfo=tz,
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_due_for_reissue(
    lease: Lease,
    now: Optional[datetime] = None,
    window: RenewalWindow = RenewalWindow.LITERAL,
    buffer: timedelta = RENEWAL_BUFFER,
) -> bool:
    """
    Check whether a lease is inside its renewal window.

    Args:
        lease: Lease to evaluate; lease_started is cleared if unparsable
        now: Current time (defaults to the local clock, UTC)
        window: Window variant to apply
        buffer: Half-width of the window around expiry

    Returns:
        True if the lease should be reissued
    """
    if not lease.lease_started:
        return False

    try:
        started = parse_timestamp(lease.lease_started)
    except ValueError as e:
        logger.warning(f"lease_started {lease.lease_started!r} for {lease.id!r} is an invalid value, removing: {e}")
        lease.lease_started = ""
        return False

    if now is None:
        now = utcnow()

    try:
        expiry = started + timedelta(seconds=lease.duration)
        latest = expiry + buffer
    except OverflowError:
        logger.warning(f"lease_duration {lease.duration} for {lease.id!r} is out of range, not renewing")
        return False

    # expired more than buffer ago, too late to bother
    if latest < now:
        return False

    if window is RenewalWindow.SYMMETRIC:
        # due once at most buffer of life is left
        return expiry <= now + buffer

    if expiry > now - buffer:
        return False

    return True
