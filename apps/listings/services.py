"""Domain services for listings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone

from dateutil.rrule import rrulestr  # type: ignore
from django.utils import timezone  # type: ignore

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    if timezone.is_aware(value):
        value = value.astimezone(dt_timezone.utc)
    return value.replace(tzinfo=None)


def compute_recurring_dates(pattern: str, start: datetime, end: datetime) -> list[datetime]:
    """Развернуть правило повторения (RFC 5545) в даты из интервала [start, end].

    Правило хранится в объявлении как текст вида
    ``DTSTART:20260105T100000Z\\nRRULE:FREQ=WEEKLY;BYDAY=MO``. Время правила
    трактуется как UTC; возвращаются aware-даты в UTC. Некорректное правило
    логируется и даёт пустой список.
    """
    if not pattern or not pattern.strip():
        return []

    naive_start = _to_naive_utc(start)
    naive_end = _to_naive_utc(end)

    try:
        rule = rrulestr(pattern.strip(), dtstart=naive_start, ignoretz=True, forceset=True)
        occurrences = rule.between(naive_start, naive_end, inc=True)
    except (ValueError, TypeError) as exc:
        logger.warning(f"Invalid recurring dates pattern {pattern!r}: {exc}")
        return []

    return [occurrence.replace(tzinfo=dt_timezone.utc) for occurrence in occurrences]
