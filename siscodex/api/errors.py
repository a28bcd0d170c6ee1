"""
Exception handlers translating engine errors into HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from structlog import get_logger

from siscodex.service.batch import (
    GroupNotFound,
    InvalidTransition,
    OperationPending,
    SelectionError,
    TermNotFound,
)
from siscodex.service.remote import RemoteError
from siscodex.service.tree import CyclicHierarchyError, DanglingParentError


def _respond(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        await get_logger().ainfo(
            "api.error",
            path=request.url.path,
            error=exc.__class__.__name__,
            status_code=status_code,
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


async def remote_error_handler(request: Request, exc: RemoteError) -> JSONResponse:
    await get_logger().awarning(
        "api.remote_error", path=request.url.path, upstream_status=exc.status_code
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)}
    )


def add_exception_handlers(app: FastAPI) -> FastAPI:
    """
    Adds the handlers for workflow and hierarchy errors:

    - Refused mode transitions and running operations are 409s.
    - Invalid selections are 400s.
    - Unknown groups and terms are 404s.
    - Inconsistent hierarchies are 500s, backend failures 502s.
    """
    app.add_exception_handler(InvalidTransition, _respond(status.HTTP_409_CONFLICT))
    app.add_exception_handler(OperationPending, _respond(status.HTTP_409_CONFLICT))
    app.add_exception_handler(SelectionError, _respond(status.HTTP_400_BAD_REQUEST))
    app.add_exception_handler(GroupNotFound, _respond(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(TermNotFound, _respond(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(
        CyclicHierarchyError, _respond(status.HTTP_500_INTERNAL_SERVER_ERROR)
    )
    app.add_exception_handler(
        DanglingParentError, _respond(status.HTTP_500_INTERNAL_SERVER_ERROR)
    )
    app.add_exception_handler(RemoteError, remote_error_handler)
    return app
