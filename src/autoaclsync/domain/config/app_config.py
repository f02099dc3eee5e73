"""
Application configuration domain model.

Top-level model for ``acl_sync.json``: where the ACL workbook and device
state live, the configured devices, and the default sync settings.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autoaclsync.domain.config.device_config import DeviceConfig
from autoaclsync.domain.config.sync_settings import SyncSettings


class AppConfig(BaseModel):
    """Domain model for the application configuration file."""

    model_config = ConfigDict(extra="allow")

    workbook: str = Field(..., description="Path to the ACL workbook (.xlsx)")
    device_dir: str = Field("devices", description="Directory holding the per-device card files")
    devices: List[DeviceConfig] = Field(default_factory=list, description="Configured access controllers")
    sync: SyncSettings = Field(default_factory=SyncSettings, description="Default sync settings")

    @field_validator("devices")
    @classmethod
    def validate_unique_devices(cls, v: List[DeviceConfig]) -> List[DeviceConfig]:
        ids = [d.device_id for d in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate device ID(s): {duplicates}")
        return sorted(v, key=lambda d: d.device_id)
