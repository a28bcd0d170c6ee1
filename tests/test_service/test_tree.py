"""
Tests for building the augmented group forest.
"""

import pytest

from siscodex.core.group import GroupData
from siscodex.service.attributes import AttributeFilter
from siscodex.service.tree import (
    DEFAULT_SEPARATOR,
    CyclicHierarchyError,
    DanglingParentError,
    augment,
    collation_key,
    filter_with_ancestors,
    get_top_level_groups,
    snapshot_from_list,
)
from siscodex.service.views import GroupViewCache


def by_id(groups):
    return {group.id: group for group in groups}


def test_full_names(snapshot):
    groups = by_id(augment(snapshot, "en"))

    assert groups["root"].full_name == ""
    assert groups["faculty"].full_name == "Faculty"
    assert groups["java"].full_name == f"Faculty{DEFAULT_SEPARATOR}Java"
    assert groups["labs"].full_name == DEFAULT_SEPARATOR.join(
        ["Faculty", "Java", "2024/25 1-Winter", "Labs"]
    )

    for group in groups.values():
        if group.parent_id is None or groups[group.parent_id].parent_id is None:
            continue
        parent = groups[group.parent_id]
        assert group.full_name == (
            f"{parent.full_name}{DEFAULT_SEPARATOR}{group.localized_name('en')}"
        )


def test_full_names_localized(snapshot):
    groups = by_id(augment(snapshot, "cs", separator=" / "))

    assert groups["labs"].full_name == "Fakulta / Jazyk Java / 2024/25 1-ZS / Cvičení"
    # Missing locale falls back to English
    assert groups["old"].full_name == "Fakulta / Archive 2023"


def test_is_admin_inherited(snapshot):
    groups = by_id(augment(snapshot, "en"))

    assert not groups["root"].is_admin
    assert groups["faculty"].is_admin
    assert groups["labs"].is_admin
    assert groups["systems"].is_admin


def test_roots_are_never_admin():
    groups = snapshot_from_list(
        [
            GroupData(id="r", name={"en": "Root"}, membership="admin"),
            GroupData(id="c", parent_id="r", name={"en": "Child"}),
        ]
    )
    augmented = by_id(augment(groups, "en"))

    assert not augmented["r"].is_admin
    assert not augmented["c"].is_admin


def test_children_sorted(snapshot):
    groups = by_id(augment(snapshot, "en"))

    assert [child.id for child in groups["faculty"].children] == [
        "old",
        "java",
        "systems",
    ]
    assert [child.id for child in groups["root"].children] == ["faculty"]
    assert groups["labs"].children == []


def test_input_untouched(snapshot):
    augment(snapshot, "en")

    assert all(type(group) is GroupData for group in snapshot.values())


def test_ties_broken_by_id():
    groups = snapshot_from_list(
        [
            GroupData(id="r", name={"en": "Root"}),
            GroupData(id="b", parent_id="r", name={"en": "Same"}),
            GroupData(id="a", parent_id="r", name={"en": "Same"}),
        ]
    )

    assert [group.id for group in augment(groups, "en")] == ["r", "a", "b"]


def test_czech_collation():
    words = ["cibule", "čaj", "chleba", "hrad", "dům", "řeka", "ruka"]

    assert sorted(words, key=lambda w: collation_key(w, "cs")) == [
        "cibule",
        "čaj",
        "dům",
        "hrad",
        "chleba",
        "ruka",
        "řeka",
    ]
    # Accents and case only break ties elsewhere
    assert sorted(["Zeta", "ábc", "abd"], key=lambda w: collation_key(w, "en")) == [
        "ábc",
        "abd",
        "Zeta",
    ]


def test_dangling_parent_is_root():
    groups = snapshot_from_list(
        [
            GroupData(id="orphan", parent_id="missing", name={"en": "Orphan"}),
            GroupData(id="child", parent_id="orphan", name={"en": "Child"}),
        ]
    )
    augmented = by_id(augment(groups, "en"))

    assert augmented["orphan"].full_name == ""
    assert augmented["child"].full_name == "Child"

    with pytest.raises(DanglingParentError):
        augment(groups, "en", strict=True)


def test_cycle_rejected():
    groups = snapshot_from_list(
        [
            GroupData(id="r", name={"en": "Root"}),
            GroupData(id="a", parent_id="b", name={"en": "A"}),
            GroupData(id="b", parent_id="c", name={"en": "B"}),
            GroupData(id="c", parent_id="a", name={"en": "C"}),
        ]
    )

    with pytest.raises(CyclicHierarchyError):
        augment(groups, "en")

    with pytest.raises(CyclicHierarchyError):
        augment(
            snapshot_from_list([GroupData(id="self", parent_id="self")]), "en"
        )


def test_top_level_groups(snapshot):
    top_level = get_top_level_groups(snapshot, "en")

    assert [group.id for group in top_level] == ["faculty"]
    assert {child.id for child in top_level[0].children} == {"old", "java", "systems"}


def test_top_level_filter_keeps_ancestors_only():
    groups = snapshot_from_list(
        [
            GroupData(id="root", name={"en": "Root"}),
            GroupData(
                id="p", parent_id="root", name={"en": "P"}, attributes={"course": ["X"]}
            ),
            GroupData(id="q", parent_id="p", name={"en": "Q"}),
            GroupData(id="leaf", parent_id="q", name={"en": "Leaf"}),
        ]
    )

    top_level = get_top_level_groups(groups, "en", AttributeFilter(key="course"))

    assert [group.id for group in top_level] == ["p"]
    assert top_level[0].children == []


def test_filter_reaches_every_match(snapshot):
    predicate = AttributeFilter(key="group", value="X2")
    filtered = filter_with_ancestors(snapshot, predicate)

    assert set(filtered) == {"root", "faculty", "java", "java-2024", "labs"}

    def reachable(groups):
        for group in groups:
            yield group.id
            yield from reachable(group.children)

    top_level = get_top_level_groups(snapshot, "en", predicate)
    assert "labs" in set(reachable(top_level))


def test_view_cache(snapshot):
    cache = GroupViewCache()
    cache.install(snapshot)

    first = cache.groups("en")
    assert cache.groups("en") is first
    assert cache.groups("cs") is not first

    predicate = AttributeFilter(key="course")
    assert cache.top_level("en", predicate) is cache.top_level(
        "en", AttributeFilter(key="course")
    )

    cache.install(dict(snapshot))
    assert cache.groups("en") is not first
