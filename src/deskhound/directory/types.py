from dataclasses import dataclass, field
from typing import Any


@dataclass
class InstalledApplication:
    name: str
    version: str = ""
    vendor: str = "Unknown"
    install_date: str = ""
    category: str = "Other"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "InstalledApplication":
        return cls(
            name=data.get("name", ""),
            version=data.get("version", ""),
            vendor=data.get("vendor") or "Unknown",
            install_date=data.get("install_date", ""),
            category=data.get("category") or "Other",
        )


@dataclass
class DeviceInfo:
    id: str
    user_id: str
    device_name: str = ""
    operating_system: str = ""
    os_version: str = ""
    model: str = ""
    serial_number: str | None = None
    mac_address: str | None = None
    ip_address: str | None = None
    last_seen: str = ""
    cpu: str = ""
    memory: str = ""
    storage: str = ""
    gpu: str | None = None
    network_adapters: list[str] = field(default_factory=list)
    applications: list[InstalledApplication] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any], user_id: str) -> "DeviceInfo":
        specs: dict[str, Any] = data.get("specifications") or {}
        return cls(
            id=str(data.get("id", "")),
            user_id=user_id,
            device_name=data.get("name", ""),
            operating_system=data.get("operating_system", ""),
            os_version=data.get("os_version", ""),
            model=data.get("model", ""),
            serial_number=data.get("serial_number"),
            mac_address=data.get("mac_address"),
            ip_address=data.get("ip_address"),
            last_seen=data.get("last_seen", ""),
            cpu=specs.get("cpu") or "",
            memory=specs.get("memory") or "",
            storage=specs.get("storage") or "",
            gpu=specs.get("gpu"),
            network_adapters=list(specs.get("network_adapters") or []),
        )


@dataclass
class DirectoryUser:
    id: str
    employee_id: str
    first_name: str
    last_name: str
    email: str
    title: str = ""
    department: str = ""
    manager: str | None = None
    start_date: str = ""
    status: str = "active"
    work_location: str = ""
    phone_number: str | None = None
    devices: list[DeviceInfo] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_api(cls, data: dict[str, Any], devices: list[DeviceInfo]) -> "DirectoryUser":
        manager = data.get("manager") or {}
        return cls(
            id=str(data.get("id", "")),
            employee_id=str(data.get("employee_id", "")),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", ""),
            title=data.get("title") or "",
            department=data.get("department") or "",
            manager=manager.get("email") if isinstance(manager, dict) else None,
            start_date=data.get("start_date", ""),
            status=data.get("status", "active"),
            work_location=data.get("work_location") or "",
            phone_number=data.get("phone_number"),
            devices=devices,
        )


@dataclass
class SyncResult:
    success: int
    failed: int
    total: int
