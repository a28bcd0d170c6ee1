"""
Resolving which groups can be bound to, or host new groups for, a scheduling
event, and which groups the batch workflows start from.

Course and term coverage are inherited: a group is covered when any group on
its ancestor chain (itself included) carries the tag. The course and the term
tag may sit on different levels.
"""

from siscodex.core.attributes import KnownAttribute
from siscodex.core.event import SchedulingEvent
from siscodex.core.group import AugmentedGroup, GroupData
from siscodex.core.term import term_key

from .attributes import attribute_values
from .tree import DEFAULT_SEPARATOR, CyclicHierarchyError, GroupSnapshot, augment


def is_suitable_for_course(
    event: SchedulingEvent, group: GroupData, groups: GroupSnapshot
) -> bool:
    """
    Check whether `group` may be bound to (or parent a new group for) the
    event's course in the event's term.

    Parameters
    ----------
    event: SchedulingEvent
        The scheduling event; needs a course code, a year and a term.
    group: GroupData
        The candidate group.
    groups: GroupSnapshot
        All groups, used to walk the ancestors of `group`.

    Raises
    ------
    CyclicHierarchyError
        If the ancestor chain of `group` loops.
    """
    course_code = event.course.code if event.course is not None else None
    if not course_code or not event.year or not event.term:
        return False

    # Already bound to this event
    if event.sis_id in attribute_values(group, KnownAttribute.GROUP):
        return False

    key = term_key(event.year, event.term)
    course_covered = False
    term_covered = False
    visited: set[str] = set()
    current: GroupData | None = group

    while current is not None and not (course_covered and term_covered):
        if current.id in visited:
            raise CyclicHierarchyError(f"Group {current.id} is its own ancestor")
        visited.add(current.id)

        course_covered = course_covered or course_code in attribute_values(
            current, KnownAttribute.COURSE
        )
        term_covered = term_covered or key in attribute_values(
            current, KnownAttribute.TERM
        )

        current = groups.get(current.parent_id) if current.parent_id else None

    return course_covered and term_covered


def get_parent_candidates(
    event: SchedulingEvent,
    groups: GroupSnapshot,
    locale: str,
    separator: str = DEFAULT_SEPARATOR,
    augmented: list[AugmentedGroup] | None = None,
) -> list[AugmentedGroup]:
    """
    Groups that may host a new group created for `event`, sorted by full
    name. Pass `augmented` to reuse an already computed augmentation of
    `groups`.
    """
    if augmented is None:
        augmented = augment(groups, locale, separator=separator)

    return [
        group
        for group in augmented
        if is_suitable_for_course(event=event, group=group, groups=groups)
    ]


def get_binding_candidates(
    event: SchedulingEvent,
    groups: GroupSnapshot,
    locale: str,
    separator: str = DEFAULT_SEPARATOR,
    augmented: list[AugmentedGroup] | None = None,
) -> list[AugmentedGroup]:
    """
    Existing groups the acting user may bind to `event`: suitable groups that
    are not purely organizational and that the user manages.
    """
    if augmented is None:
        augmented = augment(groups, locale, separator=separator)

    return [
        group
        for group in augmented
        if not group.organizational
        and (group.is_admin or group.membership == "supervisor")
        and is_suitable_for_course(event=event, group=group, groups=groups)
    ]


def lacks_term_child(group: GroupData, groups: GroupSnapshot, key: str) -> bool:
    """
    Whether `group` is a course group with no direct child for term `key`.
    """
    if not attribute_values(group, KnownAttribute.COURSE):
        return False

    return not any(
        child.parent_id == group.id
        and key in attribute_values(child, KnownAttribute.TERM)
        for child in groups.values()
    )


def is_archivable(group: GroupData, keys: set[str]) -> bool:
    """
    Whether `group` is tagged with at least one of the archivable term `keys`.
    """
    return not keys.isdisjoint(attribute_values(group, KnownAttribute.TERM))


def get_plant_candidates(groups: GroupSnapshot, key: str) -> list[str]:
    return [
        group_id
        for group_id, group in groups.items()
        if lacks_term_child(group, groups, key)
    ]


def get_archive_candidates(groups: GroupSnapshot, keys: set[str]) -> list[str]:
    return [group_id for group_id, group in groups.items() if is_archivable(group, keys)]
