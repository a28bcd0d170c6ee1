"""
Base model for payloads exchanged with the SIS-CodEx backend.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """
    The backend speaks camelCase JSON; models accept both the camelCase
    aliases and the python field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
