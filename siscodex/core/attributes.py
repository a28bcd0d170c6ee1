"""
Group attribute keys.

Attributes are key-tagged sets of strings. Three keys have a meaning the
engine understands (`course`, `term` and `group`), everything else is a
custom key that is carried around untouched.
"""

from enum import Enum
from typing import Iterable


class KnownAttribute(str, Enum):
    COURSE = "course"
    TERM = "term"
    # Holds sisIds of the scheduling events the group is bound to
    GROUP = "group"


AttributeKey = KnownAttribute | str


def parse_attribute_key(key: str) -> AttributeKey:
    """
    Return the `KnownAttribute` member for well-known keys and the plain
    string for custom ones.
    """
    try:
        return KnownAttribute(key)
    except ValueError:
        return key


def key_name(key: AttributeKey) -> str:
    if isinstance(key, KnownAttribute):
        return key.value
    return key


def unique_values(values: Iterable[str]) -> list[str]:
    """
    Drop duplicates while keeping the first occurrence of every value.
    """
    return list(dict.fromkeys(values))
