"""
Device domain model.

Describes a single access controller and the names of its doors. Door
names are matched (case and space insensitive) against the ACL worksheet
column headers.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeviceConfig(BaseModel):
    """Domain model for a configured access controller."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    device_id: int = Field(..., description="Controller serial number")
    name: str = Field("", description="Human-readable display name")
    address: Optional[str] = Field(None, description="Optional IP address for reporting")
    doors: List[str] = Field(default_factory=list, description="Door names, in door order")

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Device ID must be a positive integer")
        return v

    @field_validator("doors")
    @classmethod
    def validate_doors(cls, v: List[str]) -> List[str]:
        """Controllers have 1, 2 or 4 doors - an empty name marks an unused door."""
        if not 1 <= len(v) <= 4:
            raise ValueError("A device must have between 1 and 4 doors")
        return [door.strip() for door in v]

    @property
    def display_name(self) -> str:
        return self.name or str(self.device_id)
