"""
Batch workflows over the group snapshot: planting term groups under course
groups, archiving groups of finished terms, and adding attributes to a single
group. Single group changes (binding to events, joining) and term
maintenance go through the same orchestrator, so that they too are refused
while another operation runs.

The orchestrator is a state machine over `Mode`. Only one workflow can be
active at a time and a running batch cannot be cancelled: every call of a
batch is issued at once and the batch is reconciled only after all of them
have settled.
"""

import asyncio
import time
from contextlib import contextmanager
from typing import Awaitable, Callable

from structlog.typing import FilteringBoundLogger
from uuid_extensions import uuid7

from siscodex.core.group import GroupData
from siscodex.core.models import BatchResult, BatchState, Mode, PlantTexts
from siscodex.core.term import TermData

from .attributes import validate_attribute
from .candidates import get_archive_candidates, get_plant_candidates
from .remote import RemoteError
from .repository import GroupRepository, TermRepository
from .terms import archivable_term_keys, initial_plant_texts, validate_term
from .tree import DEFAULT_SEPARATOR, snapshot_from_list
from .views import GroupViewCache


class InvalidTransition(Exception):
    pass


class OperationPending(Exception):
    pass


class SelectionError(Exception):
    pass


class GroupNotFound(Exception):
    pass


class TermNotFound(Exception):
    pass


TRANSITIONS: dict[Mode, frozenset[Mode]] = {
    Mode.DEFAULT: frozenset(
        {Mode.ADDING_ATTRIBUTE, Mode.PLANTING_CONFIGURE, Mode.ARCHIVING}
    ),
    Mode.ADDING_ATTRIBUTE: frozenset({Mode.DEFAULT}),
    Mode.PLANTING_CONFIGURE: frozenset({Mode.PLANTING_CONFIRM, Mode.DEFAULT}),
    Mode.PLANTING_CONFIRM: frozenset({Mode.DEFAULT}),
    Mode.ARCHIVING: frozenset({Mode.DEFAULT}),
}

SELECTION_MODES = frozenset(
    {Mode.PLANTING_CONFIGURE, Mode.PLANTING_CONFIRM, Mode.ARCHIVING}
)


def describe_failure(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


class BatchOrchestrator:
    """
    Drives the plant, archive and add-attribute workflows. Expected usage:

    orchestrator = BatchOrchestrator(groups=repository, terms=repository, log=log)
    await orchestrator.reload()

    orchestrator.open_plant(term)
    orchestrator.submit_plant_texts(texts)
    result = await orchestrator.execute_plant()

    The group snapshot is read once when a workflow opens, and always
    re-fetched in full after a workflow completes. If that fetch fails the
    completed workflow still returns normally and `stale` is set until the
    next successful reload.
    """

    repository: GroupRepository
    term_repository: TermRepository
    log: FilteringBoundLogger
    views: GroupViewCache
    terms: list[TermData]

    mode: Mode
    selection: dict[str, bool]
    errors: dict[str, str]
    pending: bool
    in_flight: dict[str, str]
    stale: bool
    last_result: BatchResult | None
    term: TermData | None
    texts: PlantTexts | None
    attribute_group_id: str | None
    attribute_errors: dict[str, str]

    def __init__(
        self,
        groups: GroupRepository,
        terms: TermRepository,
        log: FilteringBoundLogger,
        separator: str = DEFAULT_SEPARATOR,
        strict: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.repository = groups
        self.term_repository = terms
        self.log = log
        self.views = GroupViewCache(separator=separator, strict=strict)
        self.terms = []
        self._clock = clock

        self.mode = Mode.DEFAULT
        self.pending = False
        self.in_flight = {}
        self.last_result = None
        self.stale = False
        self._reset()

    def _reset(self):
        self.selection = {}
        self.errors = {}
        self.term = None
        self.texts = None
        self.attribute_group_id = None
        self.attribute_errors = {}
        self._selectable: set[str] = set()
        self._idempotency_keys: dict[str, str] = {}

    @property
    def snapshot(self) -> dict[str, GroupData]:
        return self.views.snapshot

    @property
    def selection_count(self) -> int:
        return sum(1 for checked in self.selection.values() if checked)

    def now(self) -> float:
        return self._clock()

    def page_in_default_mode(self) -> bool:
        return self.mode is Mode.DEFAULT and not self.pending

    def state(self) -> BatchState:
        return BatchState(
            mode=self.mode,
            selection=dict(self.selection),
            selection_count=self.selection_count,
            errors=dict(self.errors),
            pending=self.pending,
            in_flight=dict(self.in_flight),
            stale=self.stale,
            last_result=self.last_result,
            term=self.term,
            texts=self.texts,
            attribute_group_id=self.attribute_group_id,
            attribute_errors=dict(self.attribute_errors),
        )

    def _check_pending(self):
        if self.pending:
            raise OperationPending("An operation is still running")

    def _transition(self, target: Mode):
        self._check_pending()
        self._move(target)

    def _move(self, target: Mode):
        if target not in TRANSITIONS[self.mode]:
            raise InvalidTransition(
                f"Cannot go from {self.mode.value} to {target.value}"
            )

        self.log.debug("batch.transition", source=self.mode.value, target=target.value)
        self.mode = target

    def _finish(self):
        # Called from inside a running operation, so no pending check
        self._move(Mode.DEFAULT)
        self._reset()

    def _require(self, *modes: Mode):
        self._check_pending()

        if self.mode not in modes:
            raise InvalidTransition(f"Not allowed in {self.mode.value} mode")

    def _open_selection(self, candidates: list[str]):
        self._selectable = set(candidates)
        self.selection = {group_id: True for group_id in candidates}
        self.errors = {}

    def _selected(self) -> list[str]:
        selected = [group_id for group_id, checked in self.selection.items() if checked]
        if not selected:
            raise SelectionError("No groups are selected")
        return selected

    @contextmanager
    def _operation(self, markers: dict[str, str]):
        """
        Hold the pending flag, and mark the affected groups, for the whole
        body. Enter it before the first `await` of an operation, otherwise a
        second call can pass `_require` in the meantime.
        """
        self.pending = True
        self.in_flight = dict(markers)
        self.views.mark_pending(markers)
        try:
            yield
        finally:
            self.pending = False
            self.in_flight = {}
            self.views.mark_pending({})

    @staticmethod
    async def _settle(calls: dict[str, Awaitable]) -> dict[str, BaseException]:
        """
        Await every call, never stopping at the first failure. Returns the
        failures keyed by group id.
        """
        outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)

        return {
            group_id: outcome
            for group_id, outcome in zip(calls, outcomes)
            if isinstance(outcome, BaseException)
        }

    async def reload(self):
        """
        Fetch the full group and term snapshots from the repositories.
        """
        groups, terms = await asyncio.gather(
            self.repository.fetch_all(log=self.log),
            self.term_repository.fetch_all_terms(log=self.log),
        )
        self.views.install(snapshot_from_list(groups))
        self.terms = terms
        self.stale = False
        await self.log.ainfo(
            "batch.reloaded", number_of_groups=len(groups), number_of_terms=len(terms)
        )

    async def _reload_after(self, log: FilteringBoundLogger):
        # The change itself went through; a failed reload only leaves the
        # snapshot outdated until the next one succeeds.
        try:
            await self.reload()
        except RemoteError as e:
            self.stale = True
            await log.awarning("batch.reload_failed", error=describe_failure(e))

    def toggle_selection(self, group_id: str, checked: bool) -> bool:
        """
        Check or uncheck a group of the active selection.

        Returns
        -------
        bool
            False if the group already was in the requested state, in which
            case nothing changes.

        Raises
        ------
        SelectionError
            If the group is not selectable in the active workflow.
        """
        self._require(*SELECTION_MODES)

        if group_id not in self._selectable:
            raise SelectionError(f"Group {group_id} cannot be selected")

        if self.selection.get(group_id, False) == checked:
            return False

        self.selection[group_id] = checked
        return True

    # Planting

    def open_plant(self, term: TermData) -> BatchState:
        """
        Start planting groups for `term`. Every course group without a child
        for the term is selected initially.
        """
        self._transition(Mode.PLANTING_CONFIGURE)

        candidates = get_plant_candidates(self.snapshot, term.key)
        self._open_selection(candidates)
        # Kept for retries, so the backend can recognize a repeated create
        self._idempotency_keys = {group_id: uuid7().hex for group_id in candidates}
        self.term = term
        self.texts = initial_plant_texts(term)

        self.log.info(
            "batch.plant.opened", term_key=term.key, number_of_candidates=len(candidates)
        )
        return self.state()

    def submit_plant_texts(self, texts: PlantTexts) -> BatchState:
        self._transition(Mode.PLANTING_CONFIRM)
        self.texts = texts
        return self.state()

    async def execute_plant(self) -> BatchResult:
        """
        Create a term group under every selected group, concurrently.

        When some creations fail, the workflow stays in the confirmation step
        with exactly the failing groups selected and their error messages in
        `errors`. When all succeed, the workflow ends and the snapshot is
        reloaded.

        Raises
        ------
        SelectionError
            If no group is selected.
        OperationPending
            If another operation is running.
        """
        self._require(Mode.PLANTING_CONFIRM)
        selected = self._selected()
        term, texts = self.term, self.texts

        with self._operation({group_id: "planting" for group_id in selected}):
            log = self.log.bind(term_key=term.key, number_of_groups=len(selected))
            await log.ainfo("batch.plant.started")

            failures = await self._settle(
                {
                    group_id: self.repository.create_term_group(
                        parent_id=group_id,
                        term_key=term.key,
                        texts=texts,
                        idempotency_key=self._idempotency_keys.get(group_id),
                        log=log.bind(group_id=group_id),
                    )
                    for group_id in selected
                }
            )

            self.last_result = BatchResult(
                operation="plant",
                succeeded=len(selected) - len(failures),
                failed=len(failures),
            )

            if failures:
                # Only the failed groups stay selected and selectable
                self._open_selection(list(failures))
                self.errors = {
                    group_id: describe_failure(error)
                    for group_id, error in failures.items()
                }
                await log.awarning(
                    "batch.plant.partially_failed",
                    succeeded=self.last_result.succeeded,
                    failed=self.last_result.failed,
                )
                return self.last_result

            await log.ainfo("batch.plant.completed", succeeded=self.last_result.succeeded)
            self._finish()
            await self._reload_after(log)
            return self.last_result

    def cancel_plant(self) -> BatchState:
        self._require(Mode.PLANTING_CONFIGURE, Mode.PLANTING_CONFIRM)
        self._transition(Mode.DEFAULT)
        self._reset()
        return self.state()

    # Archiving

    def start_archiving(self, now: float | None = None) -> BatchState:
        """
        Start archiving. Every group tagged with a term whose archiving
        threshold has passed is selected initially.
        """
        self._transition(Mode.ARCHIVING)

        keys = archivable_term_keys(self.terms, self.now() if now is None else now)
        candidates = get_archive_candidates(self.snapshot, keys)
        self._open_selection(candidates)

        self.log.info(
            "batch.archive.opened",
            term_keys=sorted(keys),
            number_of_candidates=len(candidates),
        )
        return self.state()

    async def execute_archive(self) -> BatchResult:
        """
        Archive every selected group, concurrently. Only the counts of
        archived and failed groups are kept. The workflow always ends and the
        snapshot is reloaded.
        """
        self._require(Mode.ARCHIVING)
        selected = self._selected()

        with self._operation({group_id: "archiving" for group_id in selected}):
            log = self.log.bind(number_of_groups=len(selected))
            await log.ainfo("batch.archive.started")

            failures = await self._settle(
                {
                    group_id: self.repository.set_archived(
                        group_id=group_id, archived=True, log=log.bind(group_id=group_id)
                    )
                    for group_id in selected
                }
            )

            self.last_result = BatchResult(
                operation="archive",
                succeeded=len(selected) - len(failures),
                failed=len(failures),
            )

            for group_id, error in failures.items():
                await log.awarning(
                    "batch.archive.group_failed",
                    group_id=group_id,
                    error=describe_failure(error),
                )
            await log.ainfo(
                "batch.archive.completed",
                succeeded=self.last_result.succeeded,
                failed=self.last_result.failed,
            )

            self._finish()
            await self._reload_after(log)
            return self.last_result

    def cancel_archiving(self) -> BatchState:
        self._require(Mode.ARCHIVING)
        self._transition(Mode.DEFAULT)
        self._reset()
        return self.state()

    # Attributes

    def open_add_attribute(self, group_id: str) -> BatchState:
        if group_id not in self.snapshot:
            raise GroupNotFound(f"Group with id {group_id} not found")

        self._transition(Mode.ADDING_ATTRIBUTE)
        self.attribute_group_id = group_id
        self.attribute_errors = {}
        return self.state()

    async def submit_add_attribute(self, key: str, value: str) -> dict[str, str]:
        """
        Validate and add an attribute to the group the dialog was opened for.

        Returns
        -------
        dict[str, str]
            Field errors (see `validate_attribute`), or the backend's message
            under `submit`. Empty on success, in which case the workflow ends
            and the snapshot is reloaded.
        """
        self._require(Mode.ADDING_ATTRIBUTE)

        group = self.snapshot[self.attribute_group_id]
        errors = validate_attribute(key, value, group.attributes)
        if errors:
            self.attribute_errors = errors
            return errors

        key, value = key.strip(), value.strip()

        with self._operation({group.id: "adding_attribute"}):
            log = self.log.bind(group_id=group.id, key=key, value=value)

            try:
                await self.repository.add_attribute(
                    group_id=group.id, key=key, value=value, log=log
                )
            except RemoteError as e:
                self.attribute_errors = {"submit": describe_failure(e)}
                await log.awarning("batch.attribute.add_failed", error=str(e))
                return self.attribute_errors

            await log.ainfo("batch.attribute.added")
            self._finish()
            await self._reload_after(log)
            return {}

    def cancel_add_attribute(self) -> BatchState:
        self._require(Mode.ADDING_ATTRIBUTE)
        self._transition(Mode.DEFAULT)
        self._reset()
        return self.state()

    # Single group changes

    async def _change_group(
        self,
        group_id: str,
        marker: str,
        event: str,
        change: Callable[[FilteringBoundLogger], Awaitable[None]],
        **context: str,
    ):
        self._require(Mode.DEFAULT)

        if group_id not in self.snapshot:
            raise GroupNotFound(f"Group with id {group_id} not found")

        with self._operation({group_id: marker}):
            log = self.log.bind(group_id=group_id, **context)
            await change(log)
            await log.ainfo(event)
            await self._reload_after(log)

    async def remove_attribute(self, group_id: str, key: str, value: str):
        """
        Remove one attribute value from a group and reload the snapshot.

        Raises
        ------
        GroupNotFound
            If the group is not in the snapshot.
        RemoteError
            If the backend refuses the change.
        """
        await self._change_group(
            group_id,
            "removing_attribute",
            "batch.attribute.removed",
            lambda log: self.repository.remove_attribute(
                group_id=group_id, key=key, value=value, log=log
            ),
            key=key,
            value=value,
        )

    async def bind_group(self, group_id: str, event_id: str):
        """
        Bind a group to a scheduling event, so that the event's students are
        assigned to it. Raises like `remove_attribute`.
        """
        await self._change_group(
            group_id,
            "binding",
            "batch.group.bound",
            lambda log: self.repository.bind_group(
                group_id=group_id, event_id=event_id, log=log
            ),
            event_id=event_id,
        )

    async def unbind_group(self, group_id: str, event_id: str):
        await self._change_group(
            group_id,
            "unbinding",
            "batch.group.unbound",
            lambda log: self.repository.unbind_group(
                group_id=group_id, event_id=event_id, log=log
            ),
            event_id=event_id,
        )

    async def join_group(self, group_id: str):
        await self._change_group(
            group_id,
            "joining",
            "batch.group.joined",
            lambda log: self.repository.join_group(group_id=group_id, log=log),
        )

    # Terms

    def find_term(self, term_id: str) -> TermData:
        for term in self.terms:
            if term.id == term_id:
                return term

        raise TermNotFound(f"Term with id {term_id} not found")

    async def create_term(self, term: TermData) -> dict[str, str]:
        """
        Validate and create a term, then reload.

        Returns
        -------
        dict[str, str]
            Field errors (see `validate_term`); empty when the term was
            created.
        """
        self._require(Mode.DEFAULT)

        errors = validate_term(term, self.terms)
        if errors:
            return errors

        with self._operation({}):
            log = self.log.bind(term_key=term.key)
            created = await self.term_repository.create_term(term=term, log=log)
            await log.ainfo("batch.term.created", term_id=created.id)
            await self._reload_after(log)

        return {}

    async def update_term(self, term_id: str, term: TermData) -> dict[str, str]:
        self._require(Mode.DEFAULT)
        self.find_term(term_id)

        errors = validate_term(term, self.terms, term_id=term_id)
        if errors:
            return errors

        with self._operation({}):
            log = self.log.bind(term_id=term_id, term_key=term.key)
            await self.term_repository.update_term(term_id=term_id, term=term, log=log)
            await log.ainfo("batch.term.updated")
            await self._reload_after(log)

        return {}

    async def delete_term(self, term_id: str):
        self._require(Mode.DEFAULT)
        term = self.find_term(term_id)

        with self._operation({}):
            log = self.log.bind(term_id=term_id, term_key=term.key)
            await self.term_repository.delete_term(term_id=term_id, log=log)
            await log.ainfo("batch.term.deleted")
            await self._reload_after(log)
