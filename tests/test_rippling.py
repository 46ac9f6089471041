from typing import Any

import httpx
import pytest

from deskhound.directory import RipplingDirectory
from deskhound.errors import DirectoryError

_EMPLOYEE = {
    "id": "E1",
    "employee_id": "1001",
    "first_name": "Alice",
    "last_name": "Smith",
    "email": "alice@example.com",
    "title": "Engineer",
    "department": "Platform",
    "manager": {"email": "boss@example.com"},
    "status": "active",
}


def _directory(
    handler: Any,
    sleeps: list[float] | None = None,
) -> RipplingDirectory:
    return RipplingDirectory(
        api_key="secret",
        base_url="https://rippling.test/",
        transport=httpx.MockTransport(handler),
        sleep=(sleeps.append if sleeps is not None else lambda _s: None),
    )


class TestConnection:
    def test_sends_bearer_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        assert _directory(handler).test_connection() is True
        assert seen[0].headers["Authorization"] == "Bearer secret"
        assert seen[0].url.params["limit"] == "1"

    def test_rejected_key(self) -> None:
        directory = _directory(lambda _r: httpx.Response(401, json={"message": "nope"}))

        with pytest.raises(DirectoryError):
            directory.test_connection()

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DirectoryError):
            _directory(handler).test_connection()

    def test_missing_key(self) -> None:
        with pytest.raises(DirectoryError):
            RipplingDirectory(api_key="")


class TestUsers:
    def test_get_user_by_email_with_devices(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            match request.url.path:
                case "/employees":
                    assert request.url.params["email"] == "alice@example.com"
                    return httpx.Response(200, json={"results": [_EMPLOYEE]})
                case "/employees/E1/devices":
                    device = {
                        "id": "D1",
                        "name": "alice-mbp",
                        "operating_system": "macOS",
                        "specifications": {"cpu": "M3", "memory": "32GB"},
                    }
                    return httpx.Response(200, json={"results": [device]})
                case "/devices/D1/applications":
                    return httpx.Response(200, json={"results": [{"name": "Slack"}]})
            return httpx.Response(404)

        user = _directory(handler).get_user_by_email("alice@example.com")

        assert user is not None
        assert user.full_name == "Alice Smith"
        assert user.manager == "boss@example.com"
        assert user.devices[0].device_name == "alice-mbp"
        assert user.devices[0].cpu == "M3"
        assert user.devices[0].applications[0].vendor == "Unknown"

    def test_unknown_email(self) -> None:
        directory = _directory(lambda _r: httpx.Response(200, json={"results": []}))

        assert directory.get_user_by_email("ghost@example.com") is None

    def test_device_failure_degrades_to_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/employees":
                return httpx.Response(200, json={"results": [_EMPLOYEE]})
            return httpx.Response(500)

        user = _directory(handler).get_user_by_email("alice@example.com")

        assert user is not None
        assert user.devices == []


class TestSync:
    def test_pages_with_delay(self) -> None:
        offsets: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path != "/employees":
                return httpx.Response(200, json={"results": []})
            offsets.append(request.url.params["offset"])
            assert request.url.params["status"] == "active"
            size = 2 if request.url.params["offset"] == "0" else 1
            employees = [{**_EMPLOYEE, "id": f"E{i}"} for i in range(size)]
            return httpx.Response(200, json={"results": employees})

        sleeps: list[float] = []

        result = _directory(handler, sleeps).sync_all_users(page_size=2)

        assert offsets == ["0", "2"]
        assert sleeps == [0.1]
        assert (result.success, result.failed, result.total) == (3, 0, 3)

    def test_failure_reported(self) -> None:
        directory = _directory(lambda _r: httpx.Response(503))

        result = directory.sync_all_users()

        assert (result.success, result.failed, result.total) == (0, 1, 1)

    def test_non_json_body_reported_as_failure(self) -> None:
        directory = _directory(
            lambda _r: httpx.Response(
                200, text="<html>maintenance</html>", headers={"Content-Type": "text/html"}
            )
        )

        result = directory.sync_all_users()

        assert (result.success, result.failed, result.total) == (0, 1, 1)

    def test_non_json_body_raises_directory_error(self) -> None:
        directory = _directory(lambda _r: httpx.Response(200, text="<html>maintenance</html>"))

        with pytest.raises(DirectoryError):
            directory.get_all_users()
