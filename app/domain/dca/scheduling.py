"""
Domain rules: recurring order cadence.

Pure date arithmetic. No IO.

The next execution is always measured from the moment the order ran,
not from its previous due time, so a backlog after downtime drains
one execution per order instead of replaying every missed period.
"""

from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta

from app.domain.dca.entities import Frequency

_FREQUENCY_STEPS = {
    Frequency.HOURLY: relativedelta(hours=1),
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
}


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_execution_after(frequency: Frequency, now: datetime) -> datetime:
    """Return ``now`` advanced by one unit of ``frequency``.

    Monthly steps follow the calendar and clamp to the month end
    (Jan 31 -> Feb 28/29).
    """
    return now + _FREQUENCY_STEPS[frequency]
