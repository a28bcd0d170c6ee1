"""
The mock repository, used for testing and the development server.
"""

import asyncio
import json
from pathlib import Path

from structlog.typing import FilteringBoundLogger
from uuid_extensions import uuid7

from siscodex.core.group import GroupData
from siscodex.core.models import PlantTexts
from siscodex.core.term import TermData

from .remote import RemoteError
from .repository import GroupRepository, TermRepository


class MockRepository(GroupRepository, TermRepository):
    """
    Keeps groups and terms in memory. Calls touching a group (or term) listed
    in `failures` raise a `RemoteError` with the configured message, after
    `delay` seconds, without changing anything. Creates under a parent listed
    in `late_failures` are applied and only then raise, like a server that
    committed the change but failed to respond.
    """

    groups: dict[str, GroupData]
    terms: list[TermData]
    failures: dict[str, str]
    late_failures: dict[str, str]
    archived: set[str]
    calls: list[tuple[str, ...]]
    delay: float

    def __init__(
        self,
        groups: list[GroupData] | None = None,
        terms: list[TermData] | None = None,
        failures: dict[str, str] | None = None,
        delay: float = 0.0,
    ):
        self.groups = {group.id: group for group in groups or []}
        self.terms = list(terms or [])
        self.failures = dict(failures or {})
        self.late_failures = {}
        self.archived = set()
        self.calls = []
        self.delay = delay
        self._created: dict[str, GroupData] = {}

    @classmethod
    def from_file(cls, path: Path) -> "MockRepository":
        """
        Load groups and terms from a JSON file shaped like the backend
        responses: `{"groups": [...], "terms": [...]}`.
        """
        with open(path, "r") as handle:
            content = json.load(handle)

        return cls(
            groups=[GroupData.model_validate(x) for x in content.get("groups", [])],
            terms=[TermData.model_validate(x) for x in content.get("terms", [])],
        )

    async def _call(self, operation: str, group_id: str, *arguments: str):
        self.calls.append((operation, group_id, *arguments))

        if self.delay:
            await asyncio.sleep(self.delay)

        if group_id in self.failures:
            raise RemoteError(self.failures[group_id], status_code=400)

        if group_id not in self.groups:
            raise RemoteError(f"Group {group_id} not found", status_code=404)

    async def fetch_all(self, log: FilteringBoundLogger) -> list[GroupData]:
        self.calls.append(("fetch_all",))
        return [
            group.model_copy(deep=True)
            for group_id, group in self.groups.items()
            if group_id not in self.archived
        ]

    async def create_term_group(
        self,
        parent_id: str,
        term_key: str,
        texts: PlantTexts,
        log: FilteringBoundLogger,
        idempotency_key: str | None = None,
    ) -> GroupData:
        await self._call("create_term_group", parent_id, term_key)

        if idempotency_key is not None and idempotency_key in self._created:
            await log.ainfo("mock.create_term_group.replayed", parent_id=parent_id)
            return self._created[idempotency_key]

        group = GroupData(
            id=uuid7().hex,
            parent_id=parent_id,
            name={"cs": texts.cs.name, "en": texts.en.name},
            organizational=True,
            attributes={"term": [term_key]},
        )
        self.groups[group.id] = group

        if idempotency_key is not None:
            self._created[idempotency_key] = group

        await log.ainfo("mock.term_group_created", parent_id=parent_id, group_id=group.id)

        if parent_id in self.late_failures:
            raise RemoteError(self.late_failures[parent_id], status_code=504)

        return group

    async def set_archived(
        self, group_id: str, archived: bool, log: FilteringBoundLogger
    ) -> None:
        await self._call("set_archived", group_id, str(archived))

        if archived:
            self.archived.add(group_id)
        else:
            self.archived.discard(group_id)

    async def add_attribute(
        self, group_id: str, key: str, value: str, log: FilteringBoundLogger
    ) -> None:
        await self._call("add_attribute", group_id, key, value)

        group = self.groups[group_id]
        attributes = {k: list(v) for k, v in group.attributes.items()}
        if value not in attributes.setdefault(key, []):
            attributes[key].append(value)
        self.groups[group_id] = group.model_copy(update={"attributes": attributes})

    async def remove_attribute(
        self, group_id: str, key: str, value: str, log: FilteringBoundLogger
    ) -> None:
        await self._call("remove_attribute", group_id, key, value)

        group = self.groups[group_id]
        attributes = {
            k: [v for v in values if not (k == key and v == value)]
            for k, values in group.attributes.items()
        }
        self.groups[group_id] = group.model_copy(
            update={"attributes": {k: v for k, v in attributes.items() if v}}
        )

    async def fetch_all_terms(self, log: FilteringBoundLogger) -> list[TermData]:
        self.calls.append(("fetch_all_terms",))
        return [term.model_copy() for term in self.terms]

    def _with_attributes(self, group_id: str, attributes: dict[str, list[str]]):
        self.groups[group_id] = self.groups[group_id].model_copy(
            update={"attributes": {k: v for k, v in attributes.items() if v}}
        )

    async def bind_group(
        self, group_id: str, event_id: str, log: FilteringBoundLogger
    ) -> None:
        await self._call("bind_group", group_id, event_id)

        attributes = {k: list(v) for k, v in self.groups[group_id].attributes.items()}
        if event_id not in attributes.setdefault("group", []):
            attributes["group"].append(event_id)
        self._with_attributes(group_id, attributes)

    async def unbind_group(
        self, group_id: str, event_id: str, log: FilteringBoundLogger
    ) -> None:
        await self._call("unbind_group", group_id, event_id)

        attributes = {k: list(v) for k, v in self.groups[group_id].attributes.items()}
        attributes["group"] = [v for v in attributes.get("group", []) if v != event_id]
        self._with_attributes(group_id, attributes)

    async def join_group(self, group_id: str, log: FilteringBoundLogger) -> None:
        await self._call("join_group", group_id)

        self.groups[group_id] = self.groups[group_id].model_copy(
            update={"membership": "student"}
        )

    async def _term_call(self, operation: str, term_id: str) -> int:
        self.calls.append((operation, term_id))

        if self.delay:
            await asyncio.sleep(self.delay)

        if term_id in self.failures:
            raise RemoteError(self.failures[term_id], status_code=400)

        for index, term in enumerate(self.terms):
            if term.id == term_id:
                return index

        raise RemoteError(f"Term {term_id} not found", status_code=404)

    async def create_term(self, term: TermData, log: FilteringBoundLogger) -> TermData:
        self.calls.append(("create_term", term.key))

        created = term.model_copy(update={"id": uuid7().hex})
        self.terms.append(created)

        await log.ainfo("mock.term_created", term_id=created.id, term=created.key)
        return created

    async def update_term(
        self, term_id: str, term: TermData, log: FilteringBoundLogger
    ) -> TermData:
        index = await self._term_call("update_term", term_id)

        updated = term.model_copy(update={"id": term_id})
        self.terms[index] = updated
        return updated

    async def delete_term(self, term_id: str, log: FilteringBoundLogger) -> None:
        index = await self._term_call("delete_term", term_id)
        del self.terms[index]


def example_repository() -> MockRepository:
    """
    A small faculty hierarchy for the development server.
    """
    groups = [
        GroupData(id="root", name={"en": "University", "cs": "Univerzita"}),
        GroupData(
            id="faculty",
            parent_id="root",
            name={"en": "Faculty of Mathematics and Physics", "cs": "MFF"},
            membership="admin",
            organizational=True,
        ),
        GroupData(
            id="nprg013",
            parent_id="faculty",
            name={"en": "Java", "cs": "Jazyk Java"},
            organizational=True,
            attributes={"course": ["NPRG013"]},
        ),
        GroupData(
            id="nprg013-2024",
            parent_id="nprg013",
            name={"en": "2024/25 1-Winter", "cs": "2024/25 1-ZS"},
            organizational=True,
            attributes={"term": ["2024-1"]},
        ),
        GroupData(
            id="nprg013-2024-labs",
            parent_id="nprg013-2024",
            name={"en": "Labs Monday", "cs": "Cvičení pondělí"},
            membership="supervisor",
            attributes={"group": ["24aNPRG013x01"]},
        ),
        GroupData(
            id="nswi170",
            parent_id="faculty",
            name={"en": "Computer Systems", "cs": "Počítačové systémy"},
            organizational=True,
            attributes={"course": ["NSWI170"]},
        ),
    ]
    terms = [
        TermData(
            year=2024,
            term=1,
            students_from=1727128800,
            students_until=1740783600,
            teachers_from=1725141600,
            teachers_until=1740783600,
            archive_after=1756677600,
        ),
        TermData(
            year=2025,
            term=1,
            students_from=1758664800,
            students_until=1772319600,
            teachers_from=1756677600,
            teachers_until=1772319600,
        ),
    ]
    return MockRepository(groups=groups, terms=terms)
