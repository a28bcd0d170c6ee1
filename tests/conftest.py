"""
Shared fixtures: a small course hierarchy and the mock repository.
"""

import pytest
import pytest_asyncio
import structlog

from siscodex.core.event import CourseData, SchedulingEvent
from siscodex.core.group import GroupData
from siscodex.core.term import TermData
from siscodex.service.batch import BatchOrchestrator
from siscodex.service.mock import MockRepository

# 2025-01-01
NOW = 1735686000


@pytest.fixture
def logger():
    return structlog.get_logger()


@pytest.fixture
def groups() -> list[GroupData]:
    """
    root
      faculty (admin)
        java [course NPRG013]
          java 2024 [term 2024-1]
            labs (supervisor) [group X2]
        systems [course NSWI170]
        archive 2023 [term 2023-1]
    """
    return [
        GroupData(id="root", name={"en": "University"}),
        GroupData(
            id="faculty",
            parent_id="root",
            name={"en": "Faculty", "cs": "Fakulta"},
            membership="admin",
            organizational=True,
        ),
        GroupData(
            id="java",
            parent_id="faculty",
            name={"en": "Java", "cs": "Jazyk Java"},
            organizational=True,
            attributes={"course": ["NPRG013"]},
        ),
        GroupData(
            id="java-2024",
            parent_id="java",
            name={"en": "2024/25 1-Winter", "cs": "2024/25 1-ZS"},
            organizational=True,
            attributes={"term": ["2024-1"]},
        ),
        GroupData(
            id="labs",
            parent_id="java-2024",
            name={"en": "Labs", "cs": "Cvičení"},
            membership="supervisor",
            attributes={"group": ["X2"]},
        ),
        GroupData(
            id="systems",
            parent_id="faculty",
            name={"en": "Systems", "cs": "Systémy"},
            organizational=True,
            attributes={"course": ["NSWI170"]},
        ),
        GroupData(
            id="old",
            parent_id="faculty",
            name={"en": "Archive 2023"},
            attributes={"term": ["2023-1"]},
        ),
    ]


@pytest.fixture
def snapshot(groups) -> dict[str, GroupData]:
    return {group.id: group for group in groups}


@pytest.fixture
def terms() -> list[TermData]:
    return [
        TermData(
            id="term-2023-1",
            year=2023,
            term=1,
            students_from=1695592800,
            students_until=1709247600,
            teachers_from=1693519200,
            teachers_until=1709247600,
            archive_after=1725141600,
        ),
        TermData(
            id="term-2024-1",
            year=2024,
            term=1,
            students_from=1727128800,
            students_until=1740783600,
            teachers_from=1725141600,
            teachers_until=1740783600,
            archive_after=1756677600,
        ),
    ]


@pytest.fixture
def event() -> SchedulingEvent:
    return SchedulingEvent(
        id="e1",
        sis_id="X1",
        course=CourseData(code="NPRG013", caption_en="Java"),
        year=2024,
        term=1,
        day_of_week=1,
        time=540,
        type="labs",
    )


@pytest.fixture
def repository(groups, terms) -> MockRepository:
    return MockRepository(groups=groups, terms=terms)


@pytest_asyncio.fixture
async def orchestrator(repository, logger) -> BatchOrchestrator:
    orchestrator = BatchOrchestrator(
        groups=repository, terms=repository, log=logger, clock=lambda: NOW
    )
    await orchestrator.reload()
    return orchestrator
