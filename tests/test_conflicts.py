from datetime import date, time
from types import SimpleNamespace

import pytest

from apps.bookings.engine import has_conflict, validate_window
from apps.bookings.exceptions import InvalidSlotError

DAY = date(2030, 1, 7)
PROVIDER = 42


def existing(start, end, status='confirmed', massager_id=PROVIDER, service_date=DAY):
    return SimpleNamespace(
        massager_id=massager_id, service_date=service_date,
        start_time=start, end_time=end, status=status,
    )


def test_overlap_with_confirmed_booking():
    bookings = [existing(time(10, 0), time(11, 0))]
    assert has_conflict(PROVIDER, DAY, time(10, 30), 60, bookings)


def test_overlap_with_in_progress_booking():
    bookings = [existing(time(10, 0), time(11, 0), status='in-progress')]
    assert has_conflict(PROVIDER, DAY, time(9, 30), 60, bookings)


def test_candidate_containing_existing_booking():
    bookings = [existing(time(10, 0), time(10, 30))]
    assert has_conflict(PROVIDER, DAY, time(9, 0), 120, bookings)


def test_back_to_back_windows_do_not_overlap():
    bookings = [existing(time(10, 0), time(11, 0))]
    assert not has_conflict(PROVIDER, DAY, time(11, 0), 60, bookings)
    assert not has_conflict(PROVIDER, DAY, time(9, 0), 60, bookings)


@pytest.mark.parametrize('status', ['pending', 'cancelled', 'rejected', 'completed'])
def test_inactive_bookings_never_block(status):
    bookings = [existing(time(10, 0), time(11, 0), status=status)]
    assert not has_conflict(PROVIDER, DAY, time(10, 0), 60, bookings)


def test_other_massager_or_other_day_ignored():
    bookings = [
        existing(time(10, 0), time(11, 0), massager_id=7),
        existing(time(10, 0), time(11, 0), service_date=date(2030, 1, 8)),
    ]
    assert not has_conflict(PROVIDER, DAY, time(10, 0), 60, bookings)


def test_no_existing_bookings():
    assert not has_conflict(PROVIDER, DAY, time(10, 0), 60, [])


@pytest.mark.parametrize('duration', [0, 29, 241, 30.5, '60', True])
def test_duration_out_of_bounds(duration):
    with pytest.raises(InvalidSlotError):
        validate_window(time(10, 0), duration)


def test_window_must_end_before_midnight():
    with pytest.raises(InvalidSlotError):
        validate_window(time(23, 30), 60)
    with pytest.raises(InvalidSlotError):
        validate_window(time(23, 0), 60)
    validate_window(time(22, 0), 60)
