"""
Pydantic models for the batch workflows and their observable state.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, field_validator

from .term import TermData


class LocalizedTexts(BaseModel):
    name: str
    description: str

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("This field must not be empty.")
        return value


class PlantTexts(BaseModel):
    """
    Name and description of newly planted term groups, per locale.
    """

    cs: LocalizedTexts
    en: LocalizedTexts


class Mode(str, Enum):
    DEFAULT = "default"
    ADDING_ATTRIBUTE = "adding_attribute"
    PLANTING_CONFIGURE = "planting_configure"
    PLANTING_CONFIRM = "planting_confirm"
    ARCHIVING = "archiving"


class BatchResult(BaseModel):
    operation: Literal["plant", "archive"]
    succeeded: int
    failed: int


class BatchState(BaseModel):
    mode: Mode
    selection: dict[str, bool]
    selection_count: int
    errors: dict[str, str]
    pending: bool
    in_flight: dict[str, str]
    stale: bool = False
    last_result: BatchResult | None = None
    term: TermData | None = None
    texts: PlantTexts | None = None
    attribute_group_id: str | None = None
    attribute_errors: dict[str, str] = {}
