"""
Core group data models.
"""

from typing import Any, Literal

from pydantic import Field, field_validator

from .attributes import unique_values
from .wire import WireModel

Membership = Literal["student", "observer", "supervisor", "admin"]


class GroupData(WireModel):
    id: str
    parent_id: str | None = Field(default=None, alias="parentGroupId")
    name: dict[str, str] = {}
    # Relation of the acting user to this group, None if there is none
    membership: Membership | None = None
    organizational: bool = False
    exam: bool = False
    attributes: dict[str, list[str]] = {}
    pending: str | None = None

    @field_validator("membership", mode="before")
    @classmethod
    def no_membership(cls, value: Any) -> Any:
        if value in ("", "none"):
            return None
        return value

    @field_validator("attributes", mode="before")
    @classmethod
    def normalize_attributes(cls, value: Any) -> Any:
        # Empty maps arrive as empty JSON arrays from the backend
        if value is None or value == []:
            return {}
        if isinstance(value, dict):
            return {
                key: unique_values(values)
                for key, values in value.items()
                if values is not None
            }
        return value

    def localized_name(self, locale: str) -> str:
        return (
            self.name.get(locale) or self.name.get("en") or self.name.get("cs") or "???"
        )


class AugmentedGroup(GroupData):
    """
    A group together with the values derived from its ancestors. These are
    recomputed for every snapshot and locale and never sent back.
    """

    full_name: str = ""
    is_admin: bool = False
    children: list["AugmentedGroup"] = []

    def flat(self) -> "AugmentedGroup":
        """
        Copy of this group without the subtree, for list-style responses.
        """
        return self.model_copy(update={"children": []})
