import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from deskhound.util.logging import configure_logging


class TestConfigureLogging:
    def setup_method(self) -> None:
        root = logging.getLogger()
        self._original_handlers = list(root.handlers)
        self._original_level = root.level

    def teardown_method(self) -> None:
        root = logging.getLogger()
        for handler in self._added_handlers():
            handler.close()
        root.handlers = list(self._original_handlers)
        root.setLevel(self._original_level)

    def _added_handlers(self) -> list[logging.Handler]:
        root = logging.getLogger()
        return [h for h in root.handlers if h not in self._original_handlers]

    def test_json_output_default(self) -> None:
        configure_logging()

        added = self._added_handlers()
        assert len(added) == 1
        assert isinstance(added[0], logging.StreamHandler)

    def test_console_output(self) -> None:
        configure_logging(json_output=False)

        added = self._added_handlers()
        assert len(added) == 1

    def test_log_level_respected(self) -> None:
        configure_logging(log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(log_level="CHATTY")

        assert logging.getLogger().level == logging.INFO

    def test_log_file_adds_rotating_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "deskhound.log"

        configure_logging(log_file=log_file)

        added = self._added_handlers()
        assert len(added) == 2
        assert any(isinstance(h, RotatingFileHandler) for h in added)
        assert log_file.parent.is_dir()
