# pendency/core/deadline_engine.py

from datetime import date, timedelta
from typing import Optional

from pendency.config import DEFAULT_TOLERANCE_DAYS
from pendency.core.date_normalizer import normalize_date
from pendency.core.models import DeadlineStatus, GlobalParameters


def coerce_tolerance(value) -> int:
    """Tolerance window in days as given. Absent, invalid or negative -> 0."""
    try:
        days = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return max(days, 0)


def classify_deadline(
    limit_date: Optional[date],
    reference_today: date,
    reference_tomorrow: date,
    tolerance_days=0,
) -> DeadlineStatus:
    """
    Classify a document's limit date against the business calendar.

    First match wins:
        no limit date            -> NO_DEADLINE
        today > limit+tolerance  -> CRITICAL  (tolerance 0 -> DEFAULT_TOLERANCE_DAYS)
        today > limit            -> OVERDUE
        today == limit           -> DUE_TODAY
        tomorrow == limit        -> DUE_TOMORROW
        otherwise                -> ON_TIME

    reference_today / reference_tomorrow come from the data tab and are
    never derived from the system clock here.
    """
    if limit_date is None:
        return DeadlineStatus.NO_DEADLINE

    # 0 means "not set": the grace period falls back to the default
    tolerance = coerce_tolerance(tolerance_days) or DEFAULT_TOLERANCE_DAYS
    critical_threshold = limit_date + timedelta(days=tolerance)

    if reference_today > critical_threshold:
        return DeadlineStatus.CRITICAL
    if reference_today > limit_date:
        return DeadlineStatus.OVERDUE
    if reference_today == limit_date:
        return DeadlineStatus.DUE_TODAY
    if reference_tomorrow == limit_date:
        return DeadlineStatus.DUE_TOMORROW
    return DeadlineStatus.ON_TIME


def classify_document_deadline(raw_limit_date: str, parameters: GlobalParameters) -> DeadlineStatus:
    """Normalize a raw limit-date string and classify it with the global parameters."""
    return classify_deadline(
        normalize_date(raw_limit_date),
        parameters.reference_today,
        parameters.reference_tomorrow,
        parameters.tolerance_days,
    )
