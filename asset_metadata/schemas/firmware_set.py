"""
Component firmware set schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .attributes import Attributes
from .firmware import ComponentFirmwareVersion


class ComponentFirmwareSetPayload(BaseModel):
    """Payload for creating, updating or trimming a firmware set.

    Fields are deliberately loose: the firmware set manager performs the
    ordered validation so that callers always see the same first error.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "r640-bios-2.17",
                "metadata": {"release": "2024-Q1"},
                "component_firmware_uuids": [
                    "d825bbeb-20fb-452e-9fe4-cdedacb2ca1f",
                ],
                "attributes": [
                    {
                        "namespace": "sh.hollow.firmware_set.labels",
                        "data": {"vendor": "dell", "model": "r640"},
                    }
                ],
            }
        },
    )

    id: Optional[str] = Field(None, alias="uuid")
    name: Optional[str] = None
    metadata: Optional[Any] = None
    component_firmware_uuids: List[str] = Field(default_factory=list)
    attributes: List[Attributes] = Field(default_factory=list)


class ComponentFirmwareSet(BaseModel):
    """A firmware set with its member firmware versions resolved."""

    uuid: str
    name: str
    metadata: Optional[Any] = None
    component_firmware: List[ComponentFirmwareVersion] = Field(default_factory=list)
    attributes: List[Attributes] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(
        cls,
        row,
        firmware: List[ComponentFirmwareVersion],
        attributes: List[Attributes],
    ) -> "ComponentFirmwareSet":
        fields: Dict[str, Any] = row.to_dict()
        return cls(**fields, component_firmware=firmware, attributes=attributes)
