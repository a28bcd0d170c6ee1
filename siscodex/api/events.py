"""
Scheduling events as listed on the course pages, with their bound groups.
"""

from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from siscodex.api.dependencies import LocaleDependency, OrchestratorDependency
from siscodex.core.event import SchedulingEvent
from siscodex.core.group import AugmentedGroup
from siscodex.service.events import (
    course_name,
    is_scheduled,
    minutes_to_time_str,
    sort_events,
    week_parity,
)

event_app = APIRouter(tags=["Events"])


class EventOverview(BaseModel):
    event: SchedulingEvent
    course_name: str
    scheduled: bool
    # H:MM, empty when the event has no time
    time: str
    week_parity: Literal["odd", "even"] | None = None
    groups: list[AugmentedGroup] = []


@event_app.post(
    "/overview",
    summary="Overview of scheduling events",
    description=(
        "The given events sorted by localized course name, each with its "
        "display values and the groups bound to it."
    ),
    responses={200: {"description": "One entry per event."}},
)
async def event_overview(
    events: list[SchedulingEvent],
    orchestrator: OrchestratorDependency,
    locale: LocaleDependency,
) -> list[EventOverview]:
    bound = orchestrator.views.by_event(locale)

    return [
        EventOverview(
            event=event,
            course_name=course_name(event, locale),
            scheduled=is_scheduled(event),
            time=minutes_to_time_str(event.time),
            week_parity=week_parity(event),
            groups=[group.flat() for group in bound.get(event.sis_id, [])],
        )
        for event in sort_events(events, locale)
    ]
