"""Facility clock: local calendar date and slot boundaries."""

from datetime import date, datetime, time

import pytest
import pytz

from courtbook.core.clock import Clock, FixedClock, as_utc


def test_today_uses_facility_date_not_utc_date():
    # 06:30 in Phnom Penh is still the previous day in UTC
    clock = FixedClock(datetime(2025, 6, 11, 6, 30))
    assert clock.now().astimezone(pytz.UTC).date() == date(2025, 6, 10)
    assert clock.today() == date(2025, 6, 11)
    assert clock.minute_of_day() == 6 * 60 + 30


def test_aware_input_is_converted_into_facility_zone():
    clock = FixedClock(datetime(2025, 6, 10, 23, 30, tzinfo=pytz.UTC))
    assert clock.today() == date(2025, 6, 11)
    assert clock.now().hour == 6


def test_slot_start_and_end():
    clock = FixedClock(datetime(2025, 6, 10, 8, 0))
    start = clock.slot_start(date(2025, 6, 11), 20)
    end = clock.slot_end(date(2025, 6, 11), 20, 2)
    assert start.time() == time(20, 0)
    assert end.date() == date(2025, 6, 11)
    assert end.time() == time(22, 0)
    assert (end - start).total_seconds() == 2 * 3600


def test_advance_moves_time_forward():
    clock = FixedClock(datetime(2025, 6, 10, 23, 59))
    clock.advance(minutes=2)
    assert clock.today() == date(2025, 6, 11)
    assert clock.minute_of_day() == 1


def test_as_utc_treats_naive_as_utc():
    naive = datetime(2025, 6, 10, 1, 0)
    assert as_utc(naive) == pytz.UTC.localize(naive)
    local = pytz.timezone("Asia/Phnom_Penh").localize(datetime(2025, 6, 10, 8, 0))
    assert as_utc(local) == pytz.UTC.localize(datetime(2025, 6, 10, 1, 0))


def test_clock_without_time_source_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Clock()
