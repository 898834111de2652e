import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Iterable, List, Tuple

logger = logging.getLogger(__name__)

ALL_DAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass
class WeeklySummary:
    days: List[Tuple[str, float]] = field(default_factory=list)
    total: float = 0

    @property
    def labels(self):
        return [day for day, _ in self.days]

    @property
    def values(self):
        return [total for _, total in self.days]


def day_index(moment: datetime) -> int:
    """Weekday with Sunday as 0."""
    return (moment.weekday() + 1) % 7


def localize(moment: datetime, tz=None) -> datetime:
    """Attach ``tz`` to a wall-clock time; no ``tz`` means server local time.

    The local offset is looked up for ``moment`` itself, so a bound on the
    far side of a DST change gets its own offset.
    """
    if tz is None:
        return moment.astimezone()
    return moment.replace(tzinfo=tz)


def day_window(now: datetime):
    return (
        localize(datetime.combine(now.date(), time.min), now.tzinfo),
        localize(datetime.combine(now.date(), time.max), now.tzinfo),
    )


def week_window(now: datetime):
    """From the start of the most recent Sunday to the end of today."""
    sunday = now.date() - timedelta(days=day_index(now))
    start = localize(datetime.combine(sunday, time.min), now.tzinfo)
    return start, day_window(now)[1]


def parse_timestamp(value, tz=None) -> datetime:
    """Aware datetime in ``tz`` (server local time when ``tz`` is None)."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return localize(value, tz)
    return value.astimezone(tz)


def weekly_totals(records: Iterable[dict], now: datetime) -> WeeklySummary:
    """Sum record amounts per day from Sunday through today.

    Each record needs ``amount`` and ``created_at``; the day is taken in
    ``now``'s timezone. Records falling on a later day of the week are
    skipped with a warning.
    """
    days_to_show = ALL_DAYS[:day_index(now) + 1]
    expense_map = {day: 0 for day in days_to_show}

    for record in records:
        created_at = parse_timestamp(record["created_at"], now.tzinfo)
        day = ALL_DAYS[day_index(created_at)]
        if day not in expense_map:
            logger.warning(
                "Skipping expense dated %s outside the week ending %s",
                created_at.isoformat(), now.date().isoformat(),
            )
            continue
        expense_map[day] += record["amount"]

    days = [(day, expense_map[day]) for day in days_to_show]
    return WeeklySummary(days=days, total=sum(total for _, total in days))
