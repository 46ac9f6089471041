from deskhound.directory.rippling import RipplingDirectory
from deskhound.directory.types import DeviceInfo, DirectoryUser, InstalledApplication, SyncResult

__all__ = [
    "DeviceInfo",
    "DirectoryUser",
    "InstalledApplication",
    "RipplingDirectory",
    "SyncResult",
]
