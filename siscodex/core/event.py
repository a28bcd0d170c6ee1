"""
Scheduling events (timetabled course occurrences) as loaded from SIS.
"""

from typing import Literal

from pydantic import BaseModel

from .wire import WireModel


class CourseData(BaseModel):
    code: str | None = None
    caption_cs: str | None = None
    caption_en: str | None = None


class SchedulingEvent(WireModel):
    id: str
    sis_id: str
    course: CourseData | None = None
    year: int | None = None
    # 1 = winter, 2 = summer
    term: int | None = None
    # 0 = Sunday
    day_of_week: int | None = None
    # Minutes from midnight, None if not scheduled
    time: int | None = None
    room: str | None = None
    fortnight: bool = False
    first_week: int | None = None
    type: Literal["lecture", "labs"] | None = None
