"""
Per-snapshot memoization of the derived group views.
"""

from typing import Any, Callable, Hashable

from siscodex.core.group import AugmentedGroup, GroupData

from .attributes import index_by_event
from .tree import (
    DEFAULT_SEPARATOR,
    GroupPredicate,
    augment,
    get_top_level_groups,
)


class GroupViewCache:
    """
    Holds one group snapshot and the views derived from it, keyed by locale
    (and filter). Installing a new snapshot drops every cached view, so the
    cache lives exactly as long as its owner (an orchestrator or an app).

    Groups with an operation in flight carry its marker in `pending` in
    every derived view; the installed snapshot itself is never touched.

    Cached groups are shared between callers and must not be mutated.
    """

    separator: str
    strict: bool

    def __init__(self, separator: str = DEFAULT_SEPARATOR, strict: bool = False):
        self.separator = separator
        self.strict = strict
        self._snapshot: dict[str, GroupData] = {}
        self._pending: dict[str, str] = {}
        self._views: dict[tuple[Hashable, ...], Any] = {}

    @property
    def snapshot(self) -> dict[str, GroupData]:
        return self._snapshot

    @property
    def pending(self) -> dict[str, str]:
        return dict(self._pending)

    def install(self, snapshot: dict[str, GroupData]):
        self._snapshot = snapshot
        self._views.clear()

    def mark_pending(self, markers: dict[str, str]):
        """
        Replace the in-flight markers, e.g. `{"g1": "planting"}`. An empty
        mapping clears them.
        """
        self._pending = dict(markers)
        self._views.clear()

    def _memoize(self, key: tuple[Hashable, ...], compute: Callable[[], Any]) -> Any:
        if key not in self._views:
            self._views[key] = compute()
        return self._views[key]

    def marked(self) -> dict[str, GroupData]:
        return self._memoize(
            ("marked",),
            lambda: {
                group_id: (
                    group.model_copy(update={"pending": self._pending[group_id]})
                    if group_id in self._pending
                    else group
                )
                for group_id, group in self._snapshot.items()
            },
        )

    def groups(self, locale: str) -> list[AugmentedGroup]:
        return self._memoize(
            ("groups", locale),
            lambda: augment(
                self.marked(), locale, separator=self.separator, strict=self.strict
            ),
        )

    def top_level(
        self, locale: str, predicate: GroupPredicate | None = None
    ) -> list[AugmentedGroup]:
        return self._memoize(
            ("top_level", locale, predicate),
            lambda: get_top_level_groups(
                self.marked(),
                locale,
                predicate=predicate,
                separator=self.separator,
                strict=self.strict,
            ),
        )

    def by_event(self, locale: str) -> dict[str, list[AugmentedGroup]]:
        return self._memoize(
            ("by_event", locale),
            lambda: index_by_event(
                self.marked(), locale, separator=self.separator, strict=self.strict
            ),
        )
