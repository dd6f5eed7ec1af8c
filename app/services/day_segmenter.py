"""
Day segmenter: split a job's total duration into per-day work segments
bounded by a working-hours profile.
"""
import logging
import math
from datetime import date, timedelta
from typing import Mapping, Optional, Union

from app.core.dispatch_config import DispatchConfig, WEEKDAYS
from app.exceptions import ValidationError
from app.schemas.job import DaySegment, MultiDaySchedule, SegmentLookup
from app.schemas.technician import WorkingDay, default_working_hours

logger = logging.getLogger(__name__)

WorkingHours = Mapping[str, Union[WorkingDay, dict]]


def time_to_minutes(value: Optional[str]) -> int:
    """'HH:MM' -> minutes after midnight. Empty values count as midnight."""
    if not value:
        return 0
    hours, _, minutes = value.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def minutes_to_time(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def format_time_12h(value: str) -> str:
    """'16:00' -> '4:00 PM'"""
    total = time_to_minutes(value)
    hours, minutes = divmod(total, 60)
    suffix = "PM" if hours % 24 >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def _as_working_day(entry) -> Optional[WorkingDay]:
    if entry is None or isinstance(entry, WorkingDay):
        return entry
    return WorkingDay.model_validate(entry)


def is_multi_day(segments: list[DaySegment]) -> bool:
    return len(segments) > 1


def get_segment_for_date(day: date, schedule: Optional[MultiDaySchedule]) -> SegmentLookup:
    if not schedule or not schedule.segments:
        return SegmentLookup(is_in_schedule=False)
    for segment in schedule.segments:
        if segment.date == day:
            return SegmentLookup(
                is_in_schedule=True,
                segment=segment,
                day_number=segment.day_number,
                label=get_multi_day_label(schedule, day),
                display=format_segment_display(segment, schedule.total_days),
            )
    return SegmentLookup(is_in_schedule=False)


def get_multi_day_dates(schedule: Optional[MultiDaySchedule]) -> list[date]:
    if not schedule:
        return []
    return [s.date for s in schedule.segments]


def format_segment_display(segment: Optional[DaySegment], total_days: int) -> str:
    """'Day 1 of 3: 8:00 AM - 4:00 PM'"""
    if not segment:
        return ""
    return (
        f"Day {segment.day_number} of {total_days}: "
        f"{format_time_12h(segment.start_time)} - {format_time_12h(segment.end_time)}"
    )


def get_multi_day_label(schedule: Optional[MultiDaySchedule], day: date) -> str:
    """Calendar badge like 'Day 2/3'; empty for single-day jobs."""
    if not schedule or not schedule.is_multi_day:
        return ""
    for segment in schedule.segments:
        if segment.date == day:
            return f"Day {segment.day_number}/{schedule.total_days}"
    return ""


def get_multi_day_summary(schedule: Optional[MultiDaySchedule]) -> str:
    """'3 days (20hrs) • Mar 4 - Mar 6'"""
    if not schedule or not schedule.is_multi_day:
        return ""
    total_hours = round(schedule.total_duration_minutes / 60)

    def fmt(d: date) -> str:
        return f"{d.strftime('%b')} {d.day}"

    return (
        f"{schedule.total_days} days ({total_hours}hrs) • "
        f"{fmt(schedule.start_date)} - {fmt(schedule.end_date)}"
    )


class DaySegmenter:
    """Turns (start date, duration, working-hours profile) into day segments"""

    def __init__(self, config: DispatchConfig):
        self.config = config

    def calculate_days_needed(self, duration_minutes: Optional[int], minutes_per_day: Optional[int] = None) -> int:
        """Rough day count ignoring the calendar; at least 1."""
        per_day = minutes_per_day or self.config.default_minutes_per_day
        if not duration_minutes or duration_minutes <= 0:
            return 1
        return math.ceil(duration_minutes / per_day)

    def generate_day_segments(
        self,
        start_date: date,
        total_minutes: Optional[int],
        working_hours: Optional[WorkingHours] = None,
        minutes_per_day: Optional[int] = None,
    ) -> list[DaySegment]:
        segments, _ = self._segment(start_date, total_minutes, working_hours, minutes_per_day)
        return segments

    def create_multi_day_schedule(
        self,
        start_date: date,
        total_minutes: Optional[int],
        working_hours: Optional[WorkingHours] = None,
        minutes_per_day: Optional[int] = None,
    ) -> MultiDaySchedule:
        segments, truncated = self._segment(start_date, total_minutes, working_hours, minutes_per_day)
        warnings = []
        if truncated:
            scheduled = sum(s.duration_minutes for s in segments)
            warnings.append(
                f"Job exceeds {self.config.segment_safety_limit_days} working days; "
                f"{max(total_minutes or 0, 0) - scheduled} minutes were not scheduled"
            )
        return MultiDaySchedule(
            is_multi_day=is_multi_day(segments),
            total_days=len(segments),
            total_duration_minutes=max(total_minutes or 0, 0),
            start_date=segments[0].date,
            end_date=segments[-1].date,
            segments=segments,
            truncated=truncated,
            warnings=warnings,
        )

    def _profile(self, working_hours: Optional[WorkingHours]) -> dict[str, Optional[WorkingDay]]:
        source = default_working_hours() if working_hours is None else working_hours
        profile = {str(k).lower(): _as_working_day(v) for k, v in source.items()}
        if all(profile.get(day) is not None and not profile[day].enabled for day in WEEKDAYS):
            raise ValidationError(
                "Working-hours profile has no working days",
                errors=[{"field": "working_hours", "message": "At least one weekday must be enabled"}],
            )
        return profile

    def _segment(
        self,
        start_date: date,
        total_minutes: Optional[int],
        working_hours: Optional[WorkingHours],
        minutes_per_day: Optional[int],
    ) -> tuple[list[DaySegment], bool]:
        profile = self._profile(working_hours)
        per_day = minutes_per_day or self.config.default_minutes_per_day
        limit = self.config.segment_safety_limit_days

        remaining = max(total_minutes or 0, 0)
        current = start_date
        segments: list[DaySegment] = []

        while True:
            entry = profile.get(WEEKDAYS[current.weekday()])
            if entry is not None and not entry.enabled:
                current += timedelta(days=1)
                continue

            start_time = (entry.start if entry else None) or self.config.default_day_start
            end_time = (entry.end if entry else None) or self.config.default_day_end
            day_start = time_to_minutes(start_time)
            available = max(min(time_to_minutes(end_time) - day_start, per_day), 0)
            allocated = min(remaining, available)

            segments.append(
                DaySegment(
                    date=current,
                    day_number=len(segments) + 1,
                    start_time=start_time,
                    start_hour=day_start // 60,
                    end_time=minutes_to_time(day_start + allocated),
                    duration_minutes=allocated,
                    is_complete=remaining <= available,
                )
            )
            remaining -= allocated
            current += timedelta(days=1)

            if remaining <= 0:
                return segments, False
            if len(segments) >= limit:
                logger.warning(
                    f"Multi-day job starting {start_date} exceeds {limit} days, "
                    f"truncating with {remaining} minutes unscheduled"
                )
                return segments, True
