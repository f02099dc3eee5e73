"""
Device fleet package.

Provides the DeviceFleet protocol and the file-backed implementation.
"""

from autoaclsync.infrastructure.devices.file_fleet import FileDeviceFleet
from autoaclsync.infrastructure.devices.fleet import DeviceFleet

__all__ = ["DeviceFleet", "FileDeviceFleet"]
