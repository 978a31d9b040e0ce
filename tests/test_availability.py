import sys
from datetime import date, datetime, time, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.services.availability import WorkWindow, day_slots, month_full_days  # noqa: E402

UTC = timezone.utc
MONDAY = date(2027, 3, 1)
BEFORE = datetime(2027, 2, 20, 12, 0, tzinfo=UTC)


def _utc(day: int, hour: int, minute: int = 0, month: int = 3) -> datetime:
    return datetime(2027, month, day, hour, minute, tzinfo=UTC)


def test_no_window_means_no_slots():
    assert day_slots(MONDAY, None, [], BEFORE) == []


def test_morning_window_yields_three_slots_without_trailing_boundary():
    window = WorkWindow(weekday=1, start=time(9), end=time(12))
    slots = day_slots(MONDAY, window, [], BEFORE)
    # 09:00, 10:00, 11:00 MSK
    assert slots == [_utc(1, 6), _utc(1, 7), _utc(1, 8)]


def test_day_slots_is_repeatable():
    window = WorkWindow(weekday=1, start=time(9), end=time(17))
    booked = [_utc(1, 7)]
    assert day_slots(MONDAY, window, booked, BEFORE) == day_slots(MONDAY, window, booked, BEFORE)


def test_booked_instant_is_removed_by_exact_match():
    window = WorkWindow(weekday=1, start=time(9), end=time(12))
    # 10:00 MSK booked, and a stray booking at 10:30 which matches no slot start.
    slots = day_slots(MONDAY, window, [_utc(1, 7), _utc(1, 7, 30)], BEFORE)
    assert slots == [_utc(1, 6), _utc(1, 8)]


def test_naive_booking_instants_are_treated_as_utc():
    window = WorkWindow(weekday=1, start=time(9), end=time(12))
    slots = day_slots(MONDAY, window, [datetime(2027, 3, 1, 6, 0)], BEFORE)
    assert slots == [_utc(1, 7), _utc(1, 8)]


def test_elapsed_slots_are_excluded():
    window = WorkWindow(weekday=1, start=time(9), end=time(12))
    # 10:30 MSK
    assert day_slots(MONDAY, window, [], _utc(1, 7, 30)) == [_utc(1, 8)]
    # A slot starting exactly now is no longer bookable.
    assert day_slots(MONDAY, window, [], _utc(1, 7)) == [_utc(1, 8)]
    assert day_slots(MONDAY, window, [], _utc(1, 9)) == []


def test_unaligned_window_stops_at_last_full_hour():
    window = WorkWindow(weekday=1, start=time(9, 30), end=time(17))
    slots = day_slots(MONDAY, window, [], BEFORE)
    assert len(slots) == 7
    assert slots[0] == _utc(1, 6, 30)
    assert slots[-1] == _utc(1, 12, 30)
    assert window.capacity == 7


def test_empty_or_inverted_window_has_no_slots():
    assert day_slots(MONDAY, WorkWindow(weekday=1, start=time(10), end=time(10)), [], BEFORE) == []
    inverted = WorkWindow(weekday=1, start=time(12), end=time(9))
    assert day_slots(MONDAY, inverted, [], BEFORE) == []
    assert inverted.capacity == 0


def test_early_morning_slots_fall_on_previous_utc_day():
    window = WorkWindow(weekday=1, start=time(0), end=time(3))
    slots = day_slots(MONDAY, window, [_utc(28, 22, month=2)], BEFORE)
    assert slots == [_utc(28, 21, month=2), _utc(28, 23, month=2)]


def test_month_full_days_counts_bookings_against_capacity():
    windows = {1: WorkWindow(weekday=1, start=time(9), end=time(12))}
    booked = [
        # 8 March: three bookings, capacity 3 -> full
        _utc(8, 6),
        _utc(8, 7),
        _utc(8, 8),
        # 15 March: two bookings -> still open
        _utc(15, 6),
        _utc(15, 7),
    ]
    full = month_full_days(2027, 3, windows, booked)

    open_mondays = {date(2027, 3, 1), date(2027, 3, 15), date(2027, 3, 22), date(2027, 3, 29)}
    assert date(2027, 3, 8) in full
    assert open_mondays.isdisjoint(full)
    # Every other day of the month has no working window.
    assert len(full) == 31 - len(open_mondays)
    assert full == sorted(full)


def test_month_full_days_groups_by_moscow_date():
    windows = {1: WorkWindow(weekday=1, start=time(0), end=time(1))}
    # 00:00 MSK on Monday 1 March is still 28 February in UTC.
    full = month_full_days(2027, 3, windows, [_utc(28, 21, month=2)])
    assert date(2027, 3, 1) in full
    assert date(2027, 3, 8) not in full


def test_month_without_schedule_is_entirely_full():
    full = month_full_days(2027, 2, {}, [])
    assert len(full) == 28
    assert full[0] == date(2027, 2, 1)
    assert full[-1] == date(2027, 2, 28)
