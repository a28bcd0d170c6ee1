"""
Building the augmented group forest from a flat snapshot of groups.

A snapshot is a mapping of group id to `GroupData`, where every group
references its parent by id. The functions here are pure: they never touch
the input groups and compute everything afresh for the given locale.
"""

import unicodedata
from typing import Callable, Iterable, Mapping

from siscodex.core.group import AugmentedGroup, GroupData

GroupSnapshot = Mapping[str, GroupData]
GroupPredicate = Callable[[GroupData], bool]

DEFAULT_SEPARATOR = " ⭢ "

# Letters that Czech collation orders as separate letters after their base
_CZECH_LETTERS = {
    "ch": "h\U0010ffff",
    "č": "c\U0010ffff",
    "ř": "r\U0010ffff",
    "š": "s\U0010ffff",
    "ž": "z\U0010ffff",
}


class CyclicHierarchyError(Exception):
    pass


class DanglingParentError(Exception):
    pass


def snapshot_from_list(groups: Iterable[GroupData]) -> dict[str, GroupData]:
    return {group.id: group for group in groups}


def collation_key(text: str, locale: str) -> tuple[str, str, str]:
    """
    Sort key approximating locale collation: letters are compared without
    case and accents first, then accents and case break ties.
    """
    folded = text.casefold()
    if locale == "cs":
        for letter, replacement in _CZECH_LETTERS.items():
            folded = folded.replace(letter, replacement)

    decomposed = unicodedata.normalize("NFD", folded)
    primary = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (primary, decomposed, text)


def parent_of(group: GroupData, groups: GroupSnapshot, strict: bool = False) -> str | None:
    """
    The id of the parent of `group` inside the snapshot, or None for roots.
    Groups referencing a missing parent are roots unless `strict` is set.
    """
    if group.parent_id is None:
        return None

    if group.parent_id not in groups:
        if strict:
            raise DanglingParentError(
                f"Group {group.id} references missing parent {group.parent_id}"
            )
        return None

    return group.parent_id


def is_root(group_id: str, groups: GroupSnapshot) -> bool:
    return parent_of(groups[group_id], groups) is None


def _resolve_ancestry(
    groups: GroupSnapshot, locale: str, separator: str, strict: bool
) -> dict[str, tuple[str, bool]]:
    """
    Compute `(full_name, is_admin)` for every group. Each ancestor chain is
    walked only until it reaches an already resolved group.
    """
    resolved: dict[str, tuple[str, bool]] = {}

    for group_id in groups:
        chain: list[GroupData] = []
        visited: set[str] = set()
        current = group_id

        while current is not None and current not in resolved:
            if current in visited:
                raise CyclicHierarchyError(
                    f"Group {current} is its own ancestor (reached from {group_id})"
                )
            visited.add(current)
            group = groups[current]
            chain.append(group)
            current = parent_of(group, groups, strict)

        # Resolve from the top of the chain downwards
        for group in reversed(chain):
            parent_id = parent_of(group, groups, strict)

            if parent_id is None:
                resolved[group.id] = ("", False)
                continue

            parent_name, parent_admin = resolved[parent_id]
            name = group.localized_name(locale)
            full_name = f"{parent_name}{separator}{name}" if parent_name else name
            resolved[group.id] = (
                full_name,
                parent_admin or group.membership == "admin",
            )

    return resolved


def augment(
    groups: GroupSnapshot,
    locale: str,
    separator: str = DEFAULT_SEPARATOR,
    strict: bool = False,
) -> list[AugmentedGroup]:
    """
    Augment all groups with their localized full name, inherited admin flag
    and children.

    Parameters
    ----------
    groups: GroupSnapshot
        All groups, keyed by id.
    locale: str
        Locale used for names and sorting.
    separator: str
        Placed between the names of a group and its parent in `full_name`.
    strict: bool
        Raise `DanglingParentError` for groups with a missing parent instead
        of treating them as roots.

    Returns
    -------
    list[AugmentedGroup]
        All groups sorted by full name (ties broken by id). The `children`
        of every group are sorted the same way.

    Raises
    ------
    CyclicHierarchyError
        If a group is its own ancestor.
    """
    resolved = _resolve_ancestry(groups, locale, separator, strict)

    augmented = {
        group_id: AugmentedGroup(
            **group.model_dump(include=set(GroupData.model_fields)),
            full_name=resolved[group_id][0],
            is_admin=resolved[group_id][1],
            children=[],
        )
        for group_id, group in groups.items()
    }

    result = sorted(
        augmented.values(),
        key=lambda group: (collation_key(group.full_name, locale), group.id),
    )

    # Children are attached only after sorting, so they keep the order
    for group in result:
        parent_id = parent_of(group, groups)
        if parent_id is not None:
            augmented[parent_id].children.append(group)

    return result


def filter_with_ancestors(
    groups: GroupSnapshot, predicate: GroupPredicate
) -> dict[str, GroupData]:
    """
    The groups matching `predicate` together with all of their ancestors,
    so that every match stays reachable from its root.
    """
    filtered = {
        group_id: group for group_id, group in groups.items() if predicate(group)
    }

    for group_id in list(filtered):
        parent_id = parent_of(groups[group_id], groups)
        while parent_id is not None and parent_id not in filtered:
            filtered[parent_id] = groups[parent_id]
            parent_id = parent_of(groups[parent_id], groups)

    return filtered


def get_top_level_groups(
    groups: GroupSnapshot,
    locale: str,
    predicate: GroupPredicate | None = None,
    separator: str = DEFAULT_SEPARATOR,
    strict: bool = False,
) -> list[AugmentedGroup]:
    """
    The first level of the (optionally filtered) forest: groups directly
    under a root, with their `children` populated. Descendants of matching
    groups are not included unless they match themselves.
    """
    if predicate is not None:
        groups = filter_with_ancestors(groups, predicate)

    return [
        group
        for group in augment(groups, locale, separator=separator, strict=strict)
        if (parent_id := parent_of(group, groups)) is not None
        and is_root(parent_id, groups)
    ]
