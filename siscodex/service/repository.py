"""
Base for group and term repositories.
"""

import abc

from structlog.typing import FilteringBoundLogger

from siscodex.core.group import GroupData
from siscodex.core.models import PlantTexts
from siscodex.core.term import TermData


class GroupRepository(abc.ABC):
    """
    The source of truth for groups. Downstream must implement:

    - fetch_all: the full snapshot of groups visible to the acting user.
    - create_term_group: create a group for a term under a course group.
    - set_archived: archive or restore a group.
    - add_attribute / remove_attribute: edit one attribute value of a group.
    - bind_group / unbind_group: attach a group to a scheduling event, or
      detach it.
    - join_group: make the acting user a student of the group.

    Mutations only become visible in the engine after the next `fetch_all`.
    """

    @abc.abstractmethod
    async def fetch_all(self, log: FilteringBoundLogger) -> list[GroupData]:
        raise NotImplementedError

    @abc.abstractmethod
    async def create_term_group(
        self,
        parent_id: str,
        term_key: str,
        texts: PlantTexts,
        log: FilteringBoundLogger,
        idempotency_key: str | None = None,
    ) -> GroupData:
        raise NotImplementedError

    @abc.abstractmethod
    async def set_archived(
        self, group_id: str, archived: bool, log: FilteringBoundLogger
    ) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def add_attribute(
        self, group_id: str, key: str, value: str, log: FilteringBoundLogger
    ) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def remove_attribute(
        self, group_id: str, key: str, value: str, log: FilteringBoundLogger
    ) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def bind_group(
        self, group_id: str, event_id: str, log: FilteringBoundLogger
    ) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def unbind_group(
        self, group_id: str, event_id: str, log: FilteringBoundLogger
    ) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def join_group(self, group_id: str, log: FilteringBoundLogger) -> None:
        raise NotImplementedError


class TermRepository(abc.ABC):
    """
    Terms (semesters). Downstream must implement listing, and creating,
    updating and deleting single terms by id.
    """

    @abc.abstractmethod
    async def fetch_all_terms(self, log: FilteringBoundLogger) -> list[TermData]:
        raise NotImplementedError

    @abc.abstractmethod
    async def create_term(self, term: TermData, log: FilteringBoundLogger) -> TermData:
        raise NotImplementedError

    @abc.abstractmethod
    async def update_term(
        self, term_id: str, term: TermData, log: FilteringBoundLogger
    ) -> TermData:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_term(self, term_id: str, log: FilteringBoundLogger) -> None:
        raise NotImplementedError
