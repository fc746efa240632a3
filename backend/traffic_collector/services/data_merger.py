"""
Data Merger
===========

The pure logic of the pipeline. No files, no network - just lists in,
lists out.

WHAT IT DOES:
------------
1. merge_readings: Combine stored + freshly fetched readings.
   One reading per (date, hour); the incoming one wins; sorted by (date, hour).
2. group_by_month: Split a batch into YYYY-MM buckets (one file per month).
3. build_daily_entries: Roll hourly readings up into one entry per day.
4. merge_daily_entries: Same as merge_readings but keyed by date.

MERGE RULE:
----------
Last write wins by key. We don't compare timestamps - whatever was fetched
most recently is considered correct. Merging the same data twice changes
nothing:

    merge(merge([], X), X) == merge([], X)

BAD DATES:
---------
A reading whose date can't be parsed is skipped (with a warning) when
grouping or aggregating. One bad record never stops the rest of the batch.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from traffic_collector.models import COUNT_FIELDS, DailyEntry, TrafficReading
from traffic_collector.utils.dates import month_key, parse_reading_date

logger = logging.getLogger(__name__)


def _as_number(value) -> Optional[float]:
    # bool is an int subclass but never a count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


class DataMerger:
    """Merge, group and aggregate traffic readings."""

    def merge_readings(
        self,
        existing: Iterable[TrafficReading],
        incoming: Iterable[TrafficReading],
    ) -> list[TrafficReading]:
        """
        Merge two batches of readings into one deduplicated, sorted list.

        Args:
            existing: Readings already stored
            incoming: Newly fetched readings (these win on conflict)

        Returns:
            Readings sorted ascending by (date, hour), one per key
        """
        merged: dict[tuple[str, int], TrafficReading] = {}

        for reading in sorted(existing, key=lambda r: r.key):
            merged[reading.key] = reading

        for reading in incoming:
            merged[reading.key] = reading

        return [merged[key] for key in sorted(merged)]

    def group_by_month(self, readings: Iterable[TrafficReading]) -> dict[str, list[TrafficReading]]:
        """
        Group readings by month (YYYY-MM).

        Order inside each month is kept as encountered - merge_readings
        sorts later.
        """
        groups: dict[str, list[TrafficReading]] = {}

        for reading in readings:
            parsed = parse_reading_date(reading.date)
            if parsed is None:
                logger.warning(f"Skipping reading with unparseable date: {reading.date!r} (hour {reading.hour})")
                continue
            groups.setdefault(month_key(parsed), []).append(reading)

        return groups

    def build_daily_entries(self, readings: Iterable[TrafficReading]) -> list[DailyEntry]:
        """
        Build one DailyEntry per date from hourly readings.

        - Counts: summed across the day's hours (missing values count as 0)
        - hours_covered: how many distinct hours we have for that day
        - uptime: arithmetic mean of the hourly uptimes

        Returns:
            Daily entries sorted by date
        """
        by_date: dict[str, list[TrafficReading]] = defaultdict(list)

        for reading in readings:
            parsed = parse_reading_date(reading.date)
            if parsed is None:
                logger.warning(f"Skipping reading with unparseable date in daily rollup: {reading.date!r}")
                continue
            by_date[parsed.isoformat()].append(reading)

        entries = []
        for day in sorted(by_date):
            day_readings = by_date[day]

            totals = {field: 0 for field in COUNT_FIELDS}
            for reading in day_readings:
                for field in COUNT_FIELDS:
                    value = _as_number(getattr(reading, field))
                    if value is not None:
                        totals[field] += value

            uptimes = [
                value for value in (_as_number(r.uptime) for r in day_readings)
                if value is not None
            ]
            uptime = sum(uptimes) / len(uptimes) if uptimes else None

            entries.append(DailyEntry(
                date=day,
                uptime=uptime,
                hours_covered=len({r.hour for r in day_readings}),
                **totals,
            ))

        return entries

    def merge_daily_entries(
        self,
        existing: Iterable[DailyEntry],
        incoming: Iterable[DailyEntry],
    ) -> list[DailyEntry]:
        """
        Merge daily entries by date. An incoming entry replaces the stored
        one for the same date completely - values are never added together.
        """
        merged: dict[str, DailyEntry] = {}

        for entry in existing:
            merged[entry.date] = entry

        for entry in incoming:
            merged[entry.date] = entry

        return [merged[day] for day in sorted(merged)]
