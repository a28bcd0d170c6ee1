"""
Views of the group hierarchy, and the changes made to a single group:
binding it to scheduling events and joining it.
"""

from fastapi import APIRouter

from siscodex.api.dependencies import (
    LocaleDependency,
    LoggerDependency,
    OrchestratorDependency,
)
from siscodex.core.event import SchedulingEvent
from siscodex.core.group import AugmentedGroup
from siscodex.core.models import BatchState
from siscodex.service.attributes import AttributeFilter
from siscodex.service.candidates import get_binding_candidates, get_parent_candidates

group_app = APIRouter(tags=["Groups"])


@group_app.get(
    "/tree",
    summary="Group forest",
    description=(
        "The groups directly under the roots of the hierarchy, each with its "
        "subtree, sorted by localized full name. When `key` (and optionally "
        "`value`) is given, only groups carrying that attribute and their "
        "ancestors are included."
    ),
    responses={
        200: {"description": "Top-level groups with their children."},
        500: {"description": "The hierarchy contains a cycle."},
    },
)
async def get_tree(
    orchestrator: OrchestratorDependency,
    locale: LocaleDependency,
    log: LoggerDependency,
    key: str | None = None,
    value: str | None = None,
) -> list[AugmentedGroup]:
    predicate = AttributeFilter(key=key, value=value) if key else None
    groups = orchestrator.views.top_level(locale, predicate)
    await log.adebug("groups.tree", locale=locale, number_of_groups=len(groups))
    return groups


@group_app.get(
    "/by-event",
    summary="Groups bound to scheduling events",
    description=(
        "Groups indexed by the SIS ids of the scheduling events they are "
        "bound to. Children are omitted."
    ),
    responses={200: {"description": "Map of event id to groups."}},
)
async def get_groups_by_event(
    orchestrator: OrchestratorDependency, locale: LocaleDependency
) -> dict[str, list[AugmentedGroup]]:
    return {
        sis_id: [group.flat() for group in groups]
        for sis_id, groups in orchestrator.views.by_event(locale).items()
    }


@group_app.post(
    "/candidates/parent",
    summary="Parent candidates for an event",
    description=(
        "Groups under which a new group for the scheduling event may be "
        "created: groups covered by both the event's course and term."
    ),
    responses={200: {"description": "Candidate groups, sorted by full name."}},
)
async def parent_candidates(
    event: SchedulingEvent,
    orchestrator: OrchestratorDependency,
    locale: LocaleDependency,
) -> list[AugmentedGroup]:
    candidates = get_parent_candidates(
        event,
        orchestrator.snapshot,
        locale,
        augmented=orchestrator.views.groups(locale),
    )
    return [group.flat() for group in candidates]


@group_app.post(
    "/candidates/binding",
    summary="Binding candidates for an event",
    description=(
        "Existing non-organizational groups managed by the acting user that "
        "may be bound to the scheduling event."
    ),
    responses={200: {"description": "Candidate groups, sorted by full name."}},
)
async def binding_candidates(
    event: SchedulingEvent,
    orchestrator: OrchestratorDependency,
    locale: LocaleDependency,
) -> list[AugmentedGroup]:
    candidates = get_binding_candidates(
        event,
        orchestrator.snapshot,
        locale,
        augmented=orchestrator.views.groups(locale),
    )
    return [group.flat() for group in candidates]


@group_app.post(
    "/{group_id}/bind/{event_id}",
    summary="Bind a group to an event",
    description=(
        "Bind the group to the scheduling event with the given SIS id and "
        "reload the snapshot."
    ),
    responses={
        200: {"description": "Group bound."},
        404: {"description": "Group not found."},
        409: {"description": "A workflow is active."},
        502: {"description": "The backend refused the change."},
    },
)
async def bind_group(
    group_id: str, event_id: str, orchestrator: OrchestratorDependency
) -> BatchState:
    await orchestrator.bind_group(group_id, event_id)
    return orchestrator.state()


@group_app.delete(
    "/{group_id}/bind/{event_id}",
    summary="Unbind a group from an event",
    responses={
        200: {"description": "Group unbound."},
        404: {"description": "Group not found."},
        409: {"description": "A workflow is active."},
        502: {"description": "The backend refused the change."},
    },
)
async def unbind_group(
    group_id: str, event_id: str, orchestrator: OrchestratorDependency
) -> BatchState:
    await orchestrator.unbind_group(group_id, event_id)
    return orchestrator.state()


@group_app.post(
    "/{group_id}/join",
    summary="Join a group as a student",
    responses={
        200: {"description": "Group joined."},
        404: {"description": "Group not found."},
        409: {"description": "A workflow is active."},
        502: {"description": "The backend refused the change."},
    },
)
async def join_group(
    group_id: str, orchestrator: OrchestratorDependency
) -> BatchState:
    await orchestrator.join_group(group_id)
    return orchestrator.state()
