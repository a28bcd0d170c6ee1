"""
Terms (semesters): listing, and maintenance by administrators.
"""

from typing import Literal

from fastapi import APIRouter, HTTPException

from siscodex.api.dependencies import LoggerDependency, OrchestratorDependency
from siscodex.core.term import TermData
from siscodex.service.terms import student_terms, teacher_terms

term_app = APIRouter(tags=["Terms"])


@term_app.get(
    "",
    summary="List terms",
    description=(
        "All known terms. With `audience`, only the terms currently open to "
        "teachers or to students, newest first. `now` (unix timestamp) "
        "defaults to the current time."
    ),
    responses={200: {"description": "Terms."}},
)
async def get_terms(
    orchestrator: OrchestratorDependency,
    audience: Literal["teacher", "student"] | None = None,
    now: float | None = None,
) -> list[TermData]:
    now = orchestrator.now() if now is None else now

    match audience:
        case "teacher":
            return teacher_terms(orchestrator.terms, now)
        case "student":
            return student_terms(orchestrator.terms, now)
        case _:
            return orchestrator.terms


@term_app.post(
    "",
    summary="Create a term",
    description="Validate and create a term, then reload groups and terms.",
    responses={
        200: {"description": "Term created."},
        409: {"description": "A workflow is active."},
        422: {"description": "The term was refused; errors keyed by field."},
        502: {"description": "The backend refused the change."},
    },
)
async def create_term(
    term: TermData, orchestrator: OrchestratorDependency, log: LoggerDependency
) -> list[TermData]:
    errors = await orchestrator.create_term(term)

    if errors:
        await log.ainfo("terms.create.invalid", term_key=term.key, fields=sorted(errors))
        raise HTTPException(status_code=422, detail=errors)

    return orchestrator.terms


@term_app.put(
    "/{term_id}",
    summary="Update a term",
    responses={
        200: {"description": "Term updated."},
        404: {"description": "Term not found."},
        409: {"description": "A workflow is active."},
        422: {"description": "The term was refused; errors keyed by field."},
        502: {"description": "The backend refused the change."},
    },
)
async def update_term(
    term_id: str, term: TermData, orchestrator: OrchestratorDependency
) -> list[TermData]:
    errors = await orchestrator.update_term(term_id, term)

    if errors:
        raise HTTPException(status_code=422, detail=errors)

    return orchestrator.terms


@term_app.delete(
    "/{term_id}",
    summary="Delete a term",
    responses={
        200: {"description": "Term deleted."},
        404: {"description": "Term not found."},
        409: {"description": "A workflow is active."},
        502: {"description": "The backend refused the change."},
    },
)
async def delete_term(
    term_id: str, orchestrator: OrchestratorDependency
) -> list[TermData]:
    await orchestrator.delete_term(term_id)
    return orchestrator.terms
