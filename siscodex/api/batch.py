"""
Batch workflows: planting term groups, archiving, and adding attributes.

All endpoints return the state of the workflow after the call. Mode
transitions not allowed from the current state are refused with a 409.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from siscodex.api.dependencies import LoggerDependency, OrchestratorDependency
from siscodex.core.models import BatchResult, BatchState, PlantTexts

batch_app = APIRouter(tags=["Batch Operations"])


class PlantRequest(BaseModel):
    year: int
    term: int


class SelectionRequest(BaseModel):
    group_id: str
    checked: bool


class ArchiveRequest(BaseModel):
    # Unix timestamp used to decide which terms are over, defaults to now
    now: float | None = None


class AttributeGroupRequest(BaseModel):
    group_id: str


class AttributeRequest(BaseModel):
    key: str
    value: str


class RemoveAttributeRequest(BaseModel):
    group_id: str
    key: str
    value: str


class BatchResponse(BaseModel):
    result: BatchResult
    state: BatchState


@batch_app.get(
    "/state",
    summary="Current workflow state",
    responses={200: {"description": "Mode, selection, errors and last result."}},
)
async def get_state(orchestrator: OrchestratorDependency) -> BatchState:
    return orchestrator.state()


@batch_app.post(
    "/reload",
    summary="Reload groups and terms",
    description="Fetch a fresh snapshot of all groups and terms from the backend.",
    responses={
        200: {"description": "Snapshot reloaded."},
        502: {"description": "The backend could not be reached."},
    },
)
async def reload(orchestrator: OrchestratorDependency) -> BatchState:
    await orchestrator.reload()
    return orchestrator.state()


@batch_app.post(
    "/selection",
    summary="Check or uncheck a group",
    description=(
        "Change the selection of the active planting or archiving workflow. "
        "Setting a group to its current state changes nothing."
    ),
    responses={
        200: {"description": "Selection updated."},
        400: {"description": "The group is not selectable."},
        409: {"description": "No selection is active."},
    },
)
async def toggle_selection(
    request: SelectionRequest, orchestrator: OrchestratorDependency
) -> BatchState:
    orchestrator.toggle_selection(request.group_id, request.checked)
    return orchestrator.state()


@batch_app.post(
    "/plant",
    summary="Start planting term groups",
    description=(
        "Open the planting workflow for a term. All course groups without a "
        "child group for the term are selected."
    ),
    responses={
        200: {"description": "Planting workflow opened."},
        404: {"description": "Term not found."},
        409: {"description": "Another workflow is active."},
    },
)
async def open_plant(
    request: PlantRequest,
    orchestrator: OrchestratorDependency,
    log: LoggerDependency,
) -> BatchState:
    term = next(
        (
            t
            for t in orchestrator.terms
            if t.year == request.year and t.term == request.term
        ),
        None,
    )

    if term is None:
        await log.ainfo("batch.plant.term_not_found", year=request.year, term=request.term)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Term not found"
        )

    return orchestrator.open_plant(term)


@batch_app.put(
    "/plant/texts",
    summary="Set texts of the planted groups",
    description="Confirm the names and descriptions and move to the confirmation step.",
    responses={
        200: {"description": "Texts accepted."},
        409: {"description": "Planting is not being configured."},
    },
)
async def submit_plant_texts(
    texts: PlantTexts, orchestrator: OrchestratorDependency
) -> BatchState:
    return orchestrator.submit_plant_texts(texts)


@batch_app.post(
    "/plant/execute",
    summary="Plant the selected groups",
    description=(
        "Create term groups under all selected groups. When some creations "
        "fail, the workflow stays open with only the failed groups selected, "
        "so that they can be retried."
    ),
    responses={
        200: {"description": "Counts of created and failed groups."},
        400: {"description": "No group is selected."},
        409: {"description": "Planting is not being confirmed."},
    },
)
async def execute_plant(orchestrator: OrchestratorDependency) -> BatchResponse:
    result = await orchestrator.execute_plant()
    return BatchResponse(result=result, state=orchestrator.state())


@batch_app.delete(
    "/plant",
    summary="Cancel planting",
    responses={
        200: {"description": "Planting cancelled."},
        409: {"description": "Planting is not active or still running."},
    },
)
async def cancel_plant(orchestrator: OrchestratorDependency) -> BatchState:
    return orchestrator.cancel_plant()


@batch_app.post(
    "/archive",
    summary="Start archiving",
    description=(
        "Open the archiving workflow. All groups tagged with a term past its "
        "archiving threshold are selected."
    ),
    responses={
        200: {"description": "Archiving workflow opened."},
        409: {"description": "Another workflow is active."},
    },
)
async def start_archiving(
    request: ArchiveRequest, orchestrator: OrchestratorDependency
) -> BatchState:
    return orchestrator.start_archiving(now=request.now)


@batch_app.post(
    "/archive/execute",
    summary="Archive the selected groups",
    responses={
        200: {"description": "Counts of archived and failed groups."},
        400: {"description": "No group is selected."},
        409: {"description": "Archiving is not active."},
    },
)
async def execute_archive(orchestrator: OrchestratorDependency) -> BatchResponse:
    result = await orchestrator.execute_archive()
    return BatchResponse(result=result, state=orchestrator.state())


@batch_app.delete(
    "/archive",
    summary="Cancel archiving",
    responses={
        200: {"description": "Archiving cancelled."},
        409: {"description": "Archiving is not active or still running."},
    },
)
async def cancel_archiving(orchestrator: OrchestratorDependency) -> BatchState:
    return orchestrator.cancel_archiving()


@batch_app.post(
    "/attribute",
    summary="Start adding an attribute",
    responses={
        200: {"description": "Attribute dialog opened."},
        404: {"description": "Group not found."},
        409: {"description": "Another workflow is active."},
    },
)
async def open_add_attribute(
    request: AttributeGroupRequest, orchestrator: OrchestratorDependency
) -> BatchState:
    return orchestrator.open_add_attribute(request.group_id)


@batch_app.put(
    "/attribute",
    summary="Add the attribute",
    description=(
        "Validate the attribute and add it to the group. Validation and "
        "backend errors are returned keyed by form field; the dialog stays "
        "open in that case."
    ),
    responses={
        200: {"description": "Attribute added."},
        409: {"description": "No attribute is being added."},
        422: {"description": "The attribute was refused."},
    },
)
async def submit_add_attribute(
    request: AttributeRequest, orchestrator: OrchestratorDependency
) -> BatchState:
    errors = await orchestrator.submit_add_attribute(request.key, request.value)

    if errors:
        raise HTTPException(status_code=422, detail=errors)

    return orchestrator.state()


@batch_app.delete(
    "/attribute",
    summary="Cancel adding an attribute",
    responses={
        200: {"description": "Attribute dialog closed."},
        409: {"description": "No attribute is being added."},
    },
)
async def cancel_add_attribute(orchestrator: OrchestratorDependency) -> BatchState:
    return orchestrator.cancel_add_attribute()


@batch_app.post(
    "/attribute/remove",
    summary="Remove an attribute value",
    responses={
        200: {"description": "Attribute removed and snapshot reloaded."},
        404: {"description": "Group not found."},
        409: {"description": "A workflow is active."},
        502: {"description": "The backend refused the change."},
    },
)
async def remove_attribute(
    request: RemoveAttributeRequest, orchestrator: OrchestratorDependency
) -> BatchState:
    await orchestrator.remove_attribute(request.group_id, request.key, request.value)
    return orchestrator.state()
