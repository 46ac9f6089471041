import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from deskhound.directory.types import DeviceInfo, DirectoryUser, InstalledApplication, SyncResult
from deskhound.errors import DirectoryError

_logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.rippling.com"
_TIMEOUT_SECONDS = 30.0
_SYNC_PAGE_SIZE = 50
DEFAULT_PAGE_DELAY = 0.1


class RipplingDirectory:
    """Read-only client for the Rippling employee and device API.

    Device and application lookups degrade to empty lists on failure, since
    they only enrich a user record. Employee lookups raise
    :class:`DirectoryError`.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        transport: httpx.BaseTransport | None = None,
        page_delay: float = DEFAULT_PAGE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key:
            raise DirectoryError("Missing Rippling API key")
        self._client = httpx.Client(
            base_url=(base_url or DEFAULT_BASE_URL).rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._page_delay = page_delay
        self._sleep = sleep

    def close(self) -> None:
        self._client.close()

    def test_connection(self) -> bool:
        try:
            response = self._client.get("/employees", params={"limit": 1})
        except httpx.HTTPError as e:
            _logger.error("rippling_connection_failed", error=str(e))
            raise DirectoryError(
                "Failed to connect to Rippling API. Check the API key and its permissions."
            ) from e
        if response.status_code != 200:
            _logger.error("rippling_connection_failed", status=response.status_code)
            raise DirectoryError(
                f"Rippling API answered {response.status_code} {response.reason_phrase}"
            )
        _logger.info("rippling_connected")
        return True

    def get_user_by_email(self, email: str) -> DirectoryUser | None:
        _logger.debug("rippling_user_lookup", email=email)
        results = self._results("/employees", params={"email": email})
        if not results:
            _logger.warning("rippling_user_not_found", email=email)
            return None
        data = results[0]
        user_id = str(data.get("id", ""))
        return DirectoryUser.from_api(data, self.get_user_devices(user_id))

    def get_user_devices(self, user_id: str) -> list[DeviceInfo]:
        try:
            results = self._results(f"/employees/{user_id}/devices")
        except DirectoryError:
            _logger.warning("rippling_devices_unavailable", user_id=user_id)
            return []

        devices: list[DeviceInfo] = []
        for data in results:
            device = DeviceInfo.from_api(data, user_id)
            device.applications = self.get_device_applications(device.id)
            devices.append(device)
        return devices

    def get_device_applications(self, device_id: str) -> list[InstalledApplication]:
        try:
            results = self._results(f"/devices/{device_id}/applications")
        except DirectoryError:
            _logger.warning("rippling_applications_unavailable", device_id=device_id)
            return []
        return [InstalledApplication.from_api(app) for app in results]

    def get_all_users(self, limit: int = 100, offset: int = 0) -> list[DirectoryUser]:
        _logger.debug("rippling_users_fetch", limit=limit, offset=offset)
        results = self._results(
            "/employees",
            params={"limit": limit, "offset": offset, "status": "active"},
        )
        return [
            DirectoryUser.from_api(data, self.get_user_devices(str(data.get("id", ""))))
            for data in results
        ]

    def sync_all_users(self, page_size: int = _SYNC_PAGE_SIZE) -> SyncResult:
        """Walk every active employee page by page, pausing between pages."""
        _logger.info("rippling_sync_started", page_size=page_size)
        synced: list[DirectoryUser] = []
        offset = 0
        try:
            while True:
                users = self.get_all_users(limit=page_size, offset=offset)
                synced.extend(users)
                offset += page_size
                if len(users) < page_size:
                    break
                self._sleep(self._page_delay)
        except DirectoryError:
            _logger.exception("rippling_sync_failed", synced=len(synced))
            return SyncResult(success=len(synced), failed=1, total=len(synced) + 1)

        _logger.info("rippling_sync_finished", total=len(synced))
        return SyncResult(success=len(synced), failed=0, total=len(synced))

    def _results(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            _logger.error(
                "rippling_http_error",
                path=path,
                status=e.response.status_code,
                body=e.response.text[:200],
            )
            raise DirectoryError(
                f"Rippling API error: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            _logger.error("rippling_connection_error", path=path, error=str(e))
            raise DirectoryError(f"Failed to reach Rippling: {e}") from e

        try:
            data = response.json() or {}
        except ValueError as e:
            _logger.error("rippling_invalid_body", path=path, body=response.text[:200])
            raise DirectoryError(f"Rippling returned a non-JSON body for {path}") from e
        if not isinstance(data, dict):
            raise DirectoryError(f"Rippling returned an unexpected payload for {path}")
        results: list[dict[str, Any]] = data.get("results") or []
        return results
