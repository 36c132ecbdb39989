"""
DEADLINE CLASSIFIER - VALIDATION TEST

Reference dates are explicit inputs; nothing here depends on the clock.
"""

from datetime import date, timedelta

from pendency.config import DEFAULT_TOLERANCE_DAYS
from pendency.core.deadline_engine import (
    classify_deadline,
    classify_document_deadline,
    coerce_tolerance,
)
from pendency.core.models import DeadlineStatus, GlobalParameters

TODAY = date(2024, 3, 5)
TOMORROW = date(2024, 3, 6)


def classify(limit, tolerance=0):
    return classify_deadline(limit, TODAY, TOMORROW, tolerance)


def test_no_limit_date():
    assert classify(None) == DeadlineStatus.NO_DEADLINE


def test_due_today():
    assert classify(TODAY) == DeadlineStatus.DUE_TODAY


def test_one_day_late_is_overdue():
    assert classify(TODAY - timedelta(days=1)) == DeadlineStatus.OVERDUE


def test_beyond_tolerance_is_critical():
    assert classify(TODAY - timedelta(days=3), tolerance=2) == DeadlineStatus.CRITICAL


def test_inside_tolerance_is_overdue():
    assert classify(TODAY - timedelta(days=2), tolerance=2) == DeadlineStatus.OVERDUE


def test_zero_tolerance_uses_default_grace_period():
    assert DEFAULT_TOLERANCE_DAYS == 2
    assert classify(TODAY - timedelta(days=1), tolerance=0) == DeadlineStatus.OVERDUE
    assert classify(TODAY - timedelta(days=2), tolerance=0) == DeadlineStatus.OVERDUE
    assert classify(TODAY - timedelta(days=3), tolerance=0) == DeadlineStatus.CRITICAL


def test_larger_tolerance_delays_escalation():
    assert classify(TODAY - timedelta(days=4), tolerance=5) == DeadlineStatus.OVERDUE
    assert classify(TODAY - timedelta(days=6), tolerance=5) == DeadlineStatus.CRITICAL


def test_due_tomorrow():
    assert classify(TOMORROW) == DeadlineStatus.DUE_TOMORROW


def test_future_is_on_time():
    assert classify(TODAY + timedelta(days=5)) == DeadlineStatus.ON_TIME


def test_tomorrow_comes_from_the_calendar_not_arithmetic():
    # Friday -> Monday business calendar
    friday = date(2024, 3, 8)
    monday = date(2024, 3, 11)
    assert classify_deadline(monday, friday, monday, 0) == DeadlineStatus.DUE_TOMORROW
    assert classify_deadline(date(2024, 3, 9), friday, monday, 0) == DeadlineStatus.ON_TIME


def test_invalid_tolerance_is_zero():
    assert coerce_tolerance(None) == 0
    assert coerce_tolerance("abc") == 0
    assert coerce_tolerance("-3") == 0
    assert coerce_tolerance(" 4 ") == 4


def test_classify_document_deadline_normalizes_raw_dates():
    parameters = GlobalParameters(reference_today=TODAY, reference_tomorrow=TOMORROW, tolerance_days=2)
    assert classify_document_deadline("05/03/2024", parameters) == DeadlineStatus.DUE_TODAY
    assert classify_document_deadline("2024-03-01", parameters) == DeadlineStatus.CRITICAL
    assert classify_document_deadline("31/02/2024", parameters) == DeadlineStatus.NO_DEADLINE
    assert classify_document_deadline("", parameters) == DeadlineStatus.NO_DEADLINE
