"""
Dependencies used by the API.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from structlog import get_logger
from structlog.typing import FilteringBoundLogger

from siscodex.config.settings import Settings
from siscodex.service.batch import BatchOrchestrator


@lru_cache
def SETTINGS():
    return Settings()


def get_settings(request: Request) -> Settings:
    return request.app.settings


def logger():
    return get_logger()


def get_orchestrator(request: Request) -> BatchOrchestrator:
    return request.app.orchestrator


SettingsDependency = Annotated[Settings, Depends(get_settings)]
LoggerDependency = Annotated[FilteringBoundLogger, Depends(logger)]
OrchestratorDependency = Annotated[BatchOrchestrator, Depends(get_orchestrator)]


def get_locale(settings: SettingsDependency, locale: str | None = None) -> str:
    """
    The `locale` query parameter, defaulting to the configured locale.
    """
    return locale or settings.default_locale


LocaleDependency = Annotated[str, Depends(get_locale)]
