"""
Tests for the day segmenter.

2026-03-02 is a Monday; the default profile works Monday-Friday 08:00-17:00
with an 8 hour working day.
"""

import pytest
from datetime import date

from app.core.dispatch_config import DispatchConfig
from app.exceptions import ValidationError
from app.services.day_segmenter import (
    DaySegmenter,
    format_segment_display,
    format_time_12h,
    get_multi_day_dates,
    get_multi_day_label,
    get_multi_day_summary,
    get_segment_for_date,
    is_multi_day,
    minutes_to_time,
    time_to_minutes,
)

MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)


@pytest.fixture
def segmenter(config):
    return DaySegmenter(config)


class TestGenerateDaySegments:
    """Tests for splitting a duration across working days."""

    def test_short_job_is_single_segment(self, segmenter):
        """A job shorter than a working day fits on its start date."""
        segments = segmenter.generate_day_segments(MONDAY, 120)

        assert len(segments) == 1
        assert segments[0].date == MONDAY
        assert segments[0].start_time == "08:00"
        assert segments[0].end_time == "10:00"
        assert segments[0].is_complete is True

    def test_overflow_rolls_to_next_day(self, segmenter):
        """500 minutes is a full 8 hour day plus 20 minutes."""
        segments = segmenter.generate_day_segments(MONDAY, 500)

        assert [s.duration_minutes for s in segments] == [480, 20]
        assert segments[0].end_time == "16:00"
        assert segments[0].is_complete is False
        assert segments[1].date == date(2026, 3, 3)
        assert segments[1].start_time == "08:00"
        assert segments[1].end_time == "08:20"
        assert segments[1].is_complete is True

    def test_weekend_is_skipped(self, segmenter):
        """A job starting Friday continues on Monday."""
        segments = segmenter.generate_day_segments(FRIDAY, 1000)

        assert [s.date for s in segments] == [FRIDAY, date(2026, 3, 9), date(2026, 3, 10)]
        assert [s.day_number for s in segments] == [1, 2, 3]
        assert all(s.date.weekday() < 5 for s in segments)

    def test_segments_sum_to_duration(self, segmenter):
        """Segment durations always add up to the job duration."""
        for duration in (1, 60, 479, 480, 481, 960, 2345):
            segments = segmenter.generate_day_segments(MONDAY, duration)
            assert sum(s.duration_minutes for s in segments) == duration
            assert segments[-1].is_complete is True
            assert all(not s.is_complete for s in segments[:-1])

    def test_start_on_day_off_moves_to_next_working_day(self, segmenter):
        """Saturday start lands on Monday."""
        segments = segmenter.generate_day_segments(date(2026, 3, 7), 60)

        assert segments[0].date == date(2026, 3, 9)

    def test_zero_duration_gives_one_empty_segment(self, segmenter):
        segments = segmenter.generate_day_segments(MONDAY, 0)

        assert len(segments) == 1
        assert segments[0].duration_minutes == 0
        assert segments[0].start_time == segments[0].end_time == "08:00"
        assert segments[0].is_complete is True

    def test_missing_duration_treated_as_zero(self, segmenter):
        segments = segmenter.generate_day_segments(MONDAY, None)

        assert len(segments) == 1
        assert segments[0].duration_minutes == 0

    def test_negative_duration_clamped(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(MONDAY, -30)

        assert schedule.total_duration_minutes == 0
        assert schedule.segments[0].duration_minutes == 0

    def test_custom_working_window(self, segmenter):
        """The working window caps the day when it is shorter than minutes-per-day."""
        hours = {
            day: {"enabled": True, "start": "07:00", "end": "11:00"}
            for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
        }
        hours["saturday"] = {"enabled": False}
        hours["sunday"] = {"enabled": False}

        segments = segmenter.generate_day_segments(MONDAY, 600, hours)

        assert [s.duration_minutes for s in segments] == [240, 240, 120]
        assert segments[0].start_time == "07:00"
        assert segments[0].start_hour == 7
        assert segments[0].end_time == "11:00"

    def test_minutes_per_day_override(self, segmenter):
        segments = segmenter.generate_day_segments(MONDAY, 600, minutes_per_day=300)

        assert [s.duration_minutes for s in segments] == [300, 300]
        assert segments[0].end_time == "13:00"

    def test_missing_weekday_entry_is_a_working_day(self, segmenter):
        """Only an explicit disabled entry is a day off."""
        segments = segmenter.generate_day_segments(MONDAY, 60, {"monday": {"enabled": False}})

        assert segments[0].date == date(2026, 3, 3)
        assert segments[0].start_time == "08:00"

    def test_all_days_disabled_rejected(self, segmenter):
        hours = {
            day: {"enabled": False}
            for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
        }

        with pytest.raises(ValidationError):
            segmenter.generate_day_segments(MONDAY, 120, hours)


class TestMultiDaySchedule:
    """Tests for the schedule wrapper."""

    def test_schedule_fields(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(FRIDAY, 1000)

        assert schedule.is_multi_day is True
        assert schedule.total_days == 3
        assert schedule.total_duration_minutes == 1000
        assert schedule.start_date == FRIDAY
        assert schedule.end_date == date(2026, 3, 10)
        assert schedule.truncated is False
        assert schedule.warnings == []

    def test_is_multi_day_matches_segment_count(self, segmenter):
        for duration in (60, 480, 481, 2000):
            schedule = segmenter.create_multi_day_schedule(MONDAY, duration)
            assert schedule.is_multi_day == (schedule.total_days > 1)
            assert is_multi_day(schedule.segments) == schedule.is_multi_day

    def test_safety_limit_truncates(self):
        """Hitting the day limit reports truncation instead of failing."""
        segmenter = DaySegmenter(DispatchConfig(segment_safety_limit_days=3))

        schedule = segmenter.create_multi_day_schedule(MONDAY, 3000)

        assert schedule.total_days == 3
        assert schedule.truncated is True
        assert len(schedule.warnings) == 1
        assert "1560 minutes were not scheduled" in schedule.warnings[0]
        assert schedule.total_duration_minutes == 3000

    def test_calculate_days_needed(self, segmenter):
        assert segmenter.calculate_days_needed(500) == 2
        assert segmenter.calculate_days_needed(480) == 1
        assert segmenter.calculate_days_needed(0) == 1
        assert segmenter.calculate_days_needed(None) == 1
        assert segmenter.calculate_days_needed(600, minutes_per_day=200) == 3


class TestDisplayHelpers:
    """Tests for calendar labels and lookups."""

    def test_time_conversions(self):
        assert time_to_minutes("08:30") == 510
        assert time_to_minutes(None) == 0
        assert minutes_to_time(510) == "08:30"

    def test_format_time_12h(self):
        assert format_time_12h("16:00") == "4:00 PM"
        assert format_time_12h("08:05") == "8:05 AM"
        assert format_time_12h("12:00") == "12:00 PM"
        assert format_time_12h("00:30") == "12:30 AM"

    def test_segment_lookup(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(FRIDAY, 1000)

        lookup = get_segment_for_date(date(2026, 3, 9), schedule)

        assert lookup.is_in_schedule is True
        assert lookup.day_number == 2
        assert lookup.label == "Day 2/3"
        assert lookup.display == "Day 2 of 3: 8:00 AM - 4:00 PM"

    def test_segment_lookup_outside_schedule(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(FRIDAY, 1000)

        assert get_segment_for_date(date(2026, 3, 7), schedule).is_in_schedule is False
        assert get_segment_for_date(FRIDAY, None).is_in_schedule is False

    def test_label_empty_for_single_day(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(MONDAY, 60)

        assert get_multi_day_label(schedule, MONDAY) == ""
        assert get_multi_day_summary(schedule) == ""

    def test_summary(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(FRIDAY, 1000)

        assert get_multi_day_summary(schedule) == "3 days (17hrs) • Mar 6 - Mar 10"

    def test_multi_day_dates(self, segmenter):
        schedule = segmenter.create_multi_day_schedule(MONDAY, 500)

        assert get_multi_day_dates(schedule) == [MONDAY, date(2026, 3, 3)]
        assert get_multi_day_dates(None) == []

    def test_format_segment_display_empty(self):
        assert format_segment_display(None, 3) == ""
