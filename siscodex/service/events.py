"""
Presentation helpers for scheduling events.
"""

from typing import Literal

from siscodex.core.event import SchedulingEvent

from .tree import collation_key


def course_name(event: SchedulingEvent, locale: str) -> str:
    course = event.course
    if course is None:
        return "???"
    return (
        getattr(course, f"caption_{locale}", None)
        or course.caption_en
        or course.caption_cs
        or "???"
    )


def sort_events(events: list[SchedulingEvent], locale: str) -> list[SchedulingEvent]:
    return sorted(
        events, key=lambda event: collation_key(course_name(event, locale), locale)
    )


def minutes_to_time_str(minutes: int | None) -> str:
    if minutes is None:
        return ""
    return f"{minutes // 60}:{minutes % 60:02d}"


def is_scheduled(event: SchedulingEvent) -> bool:
    return event.day_of_week is not None or event.time is not None


def week_parity(event: SchedulingEvent) -> Literal["odd", "even"] | None:
    """
    Which weeks a fortnightly event takes place in; None for weekly events.
    """
    if not event.fortnight or event.first_week is None:
        return None
    return "odd" if event.first_week % 2 == 1 else "even"
