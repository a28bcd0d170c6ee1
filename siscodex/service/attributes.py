"""
Lookups over group attributes.
"""

import re
from typing import Mapping

from pydantic import BaseModel

from siscodex.core.attributes import (
    AttributeKey,
    KnownAttribute,
    key_name,
    parse_attribute_key,
)
from siscodex.core.group import AugmentedGroup, GroupData

from .tree import DEFAULT_SEPARATOR, GroupSnapshot, augment

EMPTY_VALUE = "This field must not be empty."

ATTRIBUTE_FORMATS: dict[KnownAttribute, tuple[re.Pattern, str]] = {
    KnownAttribute.COURSE: (
        re.compile(r"[A-Z0-9]{3,9}"),
        "Course identifier can contain only uppercase letters and digits and "
        "must have adequate length.",
    ),
    KnownAttribute.TERM: (
        re.compile(r"20[0-9]{2}-[12]"),
        "Semester must be in the format YYYY-T, where YYYY is the year and T "
        "is the term number (1-2).",
    ),
    KnownAttribute.GROUP: (
        re.compile(r"[a-zA-Z0-9]{8,16}"),
        "The identifier can contain only letters and digits and must be 8-16 "
        "characters long.",
    ),
}

CUSTOM_KEY_FORMAT = re.compile(r"[-_a-zA-Z0-9]+")


def attribute_values(group: GroupData | None, key: AttributeKey) -> list[str]:
    """
    Values of attribute `key` of the group; an empty list when the group
    does not carry the key at all.
    """
    if group is None:
        return []
    return group.attributes.get(key_name(key)) or []


class AttributeFilter(BaseModel, frozen=True):
    """
    Group predicate matching groups that carry attribute `key` (with
    `value`, if given). Hashable, so it can key cached views.
    """

    key: str
    value: str | None = None

    def __call__(self, group: GroupData) -> bool:
        values = attribute_values(group, self.key)
        if self.value is None:
            return len(values) > 0
        return self.value in values


def index_by_event(
    groups: GroupSnapshot,
    locale: str,
    separator: str = DEFAULT_SEPARATOR,
    strict: bool = False,
) -> dict[str, list[AugmentedGroup]]:
    """
    Map sisIds of scheduling events to the groups bound to them. Each list is
    sorted by full name.
    """
    index: dict[str, list[AugmentedGroup]] = {}

    for group in augment(groups, locale, separator=separator, strict=strict):
        for sis_id in attribute_values(group, KnownAttribute.GROUP):
            # Groups come sorted, appending keeps the order
            index.setdefault(sis_id, []).append(group)

    return index


def validate_attribute(
    key: str, value: str, existing: Mapping[str, list[str]]
) -> dict[str, str]:
    """
    Validate a new attribute before it is sent to the backend.

    Parameters
    ----------
    key: str
        Attribute key, either a well-known one or a custom key.
    value: str
        The new value.
    existing: Mapping[str, list[str]]
        Attributes the group already has.

    Returns
    -------
    dict[str, str]
        Error messages keyed by form field: the key name for well-known
        attributes, `key` or `value` for custom ones. Empty when valid.
    """
    key = key.strip()
    value = value.strip()
    parsed = parse_attribute_key(key)
    errors = {}

    if isinstance(parsed, KnownAttribute):
        field = parsed.value
        pattern, message = ATTRIBUTE_FORMATS[parsed]
        if not value:
            errors[field] = EMPTY_VALUE
        elif not pattern.fullmatch(value):
            errors[field] = message
    else:
        field = "value"
        if not key:
            errors["key"] = EMPTY_VALUE
        elif not CUSTOM_KEY_FORMAT.fullmatch(key):
            errors["key"] = (
                "The key can contain only letters, digits, dash, and underscore."
            )
        if not value:
            errors["value"] = EMPTY_VALUE

    if not errors and value in existing.get(key, []):
        errors[field] = (
            f"The attribute [{key}: {value}] is already associated with this group."
        )

    return errors
