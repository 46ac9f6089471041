from unittest.mock import MagicMock, patch

import pytest

from deskhound import __main__ as cli
from deskhound.config import DirectoryConfig, HelpdeskConfig
from deskhound.directory import SyncResult
from deskhound.ingestion.poller import PollReport

_DIRECTORY_ON = HelpdeskConfig(directory=DirectoryConfig(enabled=True))


class TestMain:
    def test_unknown_command_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["deskhound", "bogus"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1

    def test_poll_once_connects_polls_and_disconnects(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.argv", ["deskhound", "poll-once"])
        service = MagicMock()
        service.force_poll.return_value = PollReport(conversations=2, emitted=5, watermark="9.0")

        with (
            patch.object(cli, "_init_logging"),
            patch.object(cli, "load_helpdesk_config", return_value=HelpdeskConfig()),
            patch.object(cli, "load_category_rules", return_value=[]),
            patch.object(cli, "Credentials", return_value=MagicMock()),
            patch.object(cli, "configure_engine"),
            patch.object(cli, "init_db"),
            patch.object(cli, "HelpdeskService", return_value=service),
        ):
            cli.main()

        assert service.connect.call_args.kwargs["start_polling"] is False
        service.force_poll.assert_called_once()
        service.disconnect.assert_called_once()
        assert "emitted=5" in capsys.readouterr().out

    def test_sync_users_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["deskhound", "sync-users"])
        credentials = MagicMock(rippling_api_key="")

        with (
            patch.object(cli, "_init_logging"),
            patch.object(cli, "load_helpdesk_config", return_value=_DIRECTORY_ON),
            patch.object(cli, "Credentials", return_value=credentials),
            pytest.raises(SystemExit),
        ):
            cli.main()

    def test_sync_users_reports_result(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.argv", ["deskhound", "sync-users"])
        directory = MagicMock()
        directory.sync_all_users.return_value = SyncResult(success=3, failed=0, total=3)

        with (
            patch.object(cli, "_init_logging"),
            patch.object(cli, "load_helpdesk_config", return_value=_DIRECTORY_ON),
            patch.object(cli, "Credentials", return_value=MagicMock(rippling_api_key="rk")),
            patch.object(cli, "RipplingDirectory", return_value=directory),
        ):
            cli.main()

        directory.close.assert_called_once()
        assert "success=3 failed=0 total=3" in capsys.readouterr().out

    def test_sync_users_disabled_in_config(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.argv", ["deskhound", "sync-users"])

        with (
            patch.object(cli, "_init_logging"),
            patch.object(cli, "load_helpdesk_config", return_value=HelpdeskConfig()),
            patch.object(cli, "RipplingDirectory") as directory_cls,
            pytest.raises(SystemExit) as exc_info,
        ):
            cli.main()

        assert exc_info.value.code == 1
        directory_cls.assert_not_called()
        assert "disabled" in capsys.readouterr().out
