"""
Attribute schemas.

Attributes carry opaque JSON under a caller-chosen namespace. Latest
attributes hold one value per namespace; versioned attributes keep every
report and expose the most recent one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, constr


class Attributes(BaseModel):
    """A namespaced JSON document attached to an entity."""

    model_config = ConfigDict(extra="forbid")

    namespace: constr(min_length=1, max_length=255) = Field(
        ..., description="Namespace partitioning the attribute data"
    )
    data: Any = Field(..., description="Opaque JSON document")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row) -> "Attributes":
        return cls(**row.to_dict())


class VersionedAttributes(BaseModel):
    """One observation in an append-only attribute history."""

    model_config = ConfigDict(extra="forbid")

    namespace: constr(min_length=1, max_length=255)
    data: Any
    tally: int = 0
    reported_at: Optional[datetime] = Field(
        None, description="When the data was observed; defaults to now"
    )
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row) -> "VersionedAttributes":
        return cls(**row.to_dict())


class AttributeFilter(BaseModel):
    """One filter clause over an entity's attributes.

    ``attribute_operator`` OR joins the clause to the group of the clause
    before it; AND starts a new group.
    """

    namespace: str = ""
    keys: List[str] = Field(default_factory=list)
    operator: str = "eq"
    value: Optional[Union[str, int, float, bool]] = None
    attribute_operator: str = "AND"


class AttributeData(BaseModel):
    """Body of a write to an attribute namespace named in the URL."""

    model_config = ConfigDict(extra="forbid")

    data: Any
