"""
FastAPI app
"""

from importlib.metadata import version

from fastapi import FastAPI

from siscodex.config.settings import Settings
from siscodex.service.batch import BatchOrchestrator
from siscodex.service.remote import RemoteError, RemoteRepository

from .batch import batch_app
from .dependencies import SETTINGS, logger
from .errors import add_exception_handlers
from .events import event_app
from .groups import group_app
from .terms import term_app


def create_app(settings: Settings) -> FastAPI:
    """
    Create the management API. The orchestrator is set up on startup; when
    the app is served without running its lifespan (e.g. in tests),
    `app.orchestrator` has to be set by hand.
    """

    async def lifespan(app: FastAPI):
        log = logger().bind(repository=settings.repository)
        repository = settings.create_repository()

        app.orchestrator = BatchOrchestrator(
            groups=repository,
            terms=repository,
            log=log,
            separator=settings.name_separator,
            strict=settings.strict_hierarchy,
        )

        try:
            await app.orchestrator.reload()
        except RemoteError as e:
            # Served with an empty snapshot until POST /batch/reload succeeds
            app.orchestrator.stale = True
            await log.awarning("api.initial_reload_failed", error=str(e))

        yield

        if isinstance(repository, RemoteRepository):
            await repository.aclose()

    app = FastAPI(
        lifespan=lifespan,
        title="SIS-CodEx Groups API",
        summary=(
            "Management of the group hierarchy linking SIS courses and terms to "
            "ReCodEx groups: tree views, binding candidates, and batch planting "
            "and archiving of term groups."
        ),
        version=version("siscodex"),
    )
    app.settings = settings

    app = add_exception_handlers(app)

    app.include_router(group_app, prefix="/groups")
    app.include_router(batch_app, prefix="/batch")
    app.include_router(term_app, prefix="/terms")
    app.include_router(event_app, prefix="/events")

    return app


app = create_app(SETTINGS())
