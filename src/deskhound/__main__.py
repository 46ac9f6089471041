import signal
import sys
import threading

import structlog
from pydantic import ValidationError

from deskhound.config import (
    Credentials,
    HelpdeskConfig,
    load_category_rules,
    load_helpdesk_config,
    load_logging_config,
)
from deskhound.directory import RipplingDirectory
from deskhound.errors import DeskhoundError
from deskhound.service import HelpdeskService
from deskhound.storage import MessageRepository
from deskhound.util.db import configure_engine, init_db
from deskhound.util.logging import configure_logging

_logger = structlog.get_logger()

_COMMANDS = ("run", "poll-once", "sync-users")


def _init_logging() -> None:
    try:
        config = load_logging_config()
    except Exception:
        configure_logging()
        return
    configure_logging(
        json_output=config.json_output,
        log_level=config.log_level,
        log_file=config.log_file,
    )


def _load_credentials() -> Credentials:
    try:
        return Credentials()  # type: ignore[call-arg]
    except ValidationError:
        print("SLACK_BOT_TOKEN is not set (environment or .env)")
        sys.exit(1)


def _build_service(config: HelpdeskConfig) -> HelpdeskService:
    configure_engine(config.storage.database_url)
    init_db()
    return HelpdeskService(
        repository=MessageRepository(),
        poller_config=config.poller,
        rules=load_category_rules(),
    )


def _run(config: HelpdeskConfig) -> None:
    credentials = _load_credentials()
    service = _build_service(config)
    service.connect(credentials, config.slack)

    shutdown = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: shutdown.set())
    signal.signal(signal.SIGTERM, lambda *_: shutdown.set())
    shutdown.wait()

    service.disconnect()


def _poll_once(config: HelpdeskConfig) -> None:
    credentials = _load_credentials()
    service = _build_service(config)
    service.connect(credentials, config.slack, start_polling=False)
    try:
        report = service.force_poll()
    finally:
        service.disconnect()
    print(
        f"conversations={report.conversations} emitted={report.emitted} "
        f"skipped={report.skipped} failed={report.failed} watermark={report.watermark}"
    )


def _sync_users(config: HelpdeskConfig) -> None:
    if not config.directory.enabled:
        print("Directory sync is disabled (set directory.enabled in config/helpdesk.yaml)")
        sys.exit(1)

    credentials = _load_credentials()
    if not credentials.rippling_api_key:
        print("RIPPLING_API_KEY is not set (environment or .env)")
        sys.exit(1)

    directory = RipplingDirectory(
        api_key=credentials.rippling_api_key,
        base_url=credentials.rippling_base_url,
        page_delay=config.directory.page_delay_seconds,
    )
    try:
        directory.test_connection()
        result = directory.sync_all_users(page_size=config.directory.page_size)
    finally:
        directory.close()
    print(f"success={result.success} failed={result.failed} total={result.total}")


def main() -> None:
    args = sys.argv[1:]
    command = args[0] if args else "run"
    if command not in _COMMANDS:
        print(f"Usage: deskhound [{{{','.join(_COMMANDS)}}}]")
        sys.exit(1)

    _init_logging()
    config = load_helpdesk_config()

    try:
        match command:
            case "run":
                _run(config)
            case "poll-once":
                _poll_once(config)
            case "sync-users":
                _sync_users(config)
    except DeskhoundError as e:
        _logger.error("command_failed", command=command, error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
