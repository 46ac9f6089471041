import threading
from collections.abc import Callable, Sequence

import structlog

from deskhound.config import DEFAULT_CATEGORY_RULES, Credentials, PollerConfig, SlackSettings
from deskhound.errors import NotConnectedError
from deskhound.ingestion.channels import ChannelResolver
from deskhound.ingestion.converter import MessageConverter
from deskhound.ingestion.poller import Poller, PollReport
from deskhound.ingestion.types import CategoryRule
from deskhound.messaging.platform.adapter.slack import SlackPlatform
from deskhound.messaging.platform.platform import AbstractChatPlatform
from deskhound.messaging.platform.types import WorkspaceIdentity
from deskhound.storage.repository import MessageRepository
from deskhound.storage.sink import MessageHandler, RecordSink

_logger = structlog.get_logger()

PlatformFactory = Callable[[Credentials], AbstractChatPlatform]


def _slack_platform(credentials: Credentials) -> AbstractChatPlatform:
    return SlackPlatform(bot_token=credentials.slack_bot_token)


class HelpdeskService:
    """Owns the chat connection and the polling ingestion built on top of it.

    Handlers registered with :meth:`on_message` survive reconnects. Category
    rules and channel settings can be swapped at any time; the next tick (or,
    for rules, the next converted message) picks them up.
    """

    def __init__(
        self,
        repository: MessageRepository | None = None,
        sink: RecordSink | None = None,
        poller_config: PollerConfig | None = None,
        rules: Sequence[CategoryRule] = DEFAULT_CATEGORY_RULES,
        platform_factory: PlatformFactory = _slack_platform,
    ) -> None:
        self.sink = sink or RecordSink(repository)
        self._poller_config = poller_config or PollerConfig()
        self._platform_factory = platform_factory

        self._lock = threading.Lock()
        self._rules: list[CategoryRule] = list(rules)
        self._settings: SlackSettings | None = None

        self._platform: AbstractChatPlatform | None = None
        self._poller: Poller | None = None
        self.identity: WorkspaceIdentity | None = None

    def connect(
        self,
        credentials: Credentials,
        settings: SlackSettings | None = None,
        start_polling: bool = True,
    ) -> WorkspaceIdentity:
        if self.is_connected():
            self.disconnect()

        _logger.info("helpdesk_connecting")
        platform = self._platform_factory(credentials)
        try:
            identity = platform.authenticate()
        except Exception:
            platform.close()
            raise

        channels = ChannelResolver(platform.resolve_conversation_info)
        converter = MessageConverter(
            lookup_user=platform.resolve_user,
            channels=channels,
            rules=self.category_rules,
        )
        poller = Poller(
            platform=platform,
            converter=converter,
            sink=self.sink,
            settings=self.settings,
            config=self._poller_config,
            bot_user_id=identity.bot_user_id,
        )

        with self._lock:
            self._platform = platform
            self._settings = settings
            self._poller = poller
            self.identity = identity

        _logger.info("helpdesk_connected", team=identity.team, platform=platform.identify().value)
        if start_polling:
            poller.start()
        return identity

    def disconnect(self) -> None:
        with self._lock:
            platform, self._platform = self._platform, None
            poller, self._poller = self._poller, None
            self.identity = None

        if poller is None and platform is None:
            return

        if poller is not None:
            poller.stop()
        if platform is not None:
            platform.close()
        _logger.info("helpdesk_disconnected")

    def is_connected(self) -> bool:
        with self._lock:
            return self._platform is not None

    def force_poll(self) -> PollReport:
        with self._lock:
            poller = self._poller
        if poller is None:
            raise NotConnectedError("Connect to Slack before polling")
        _logger.info("force_poll_requested", settings=self._settings)
        return poller.poll_once()

    @property
    def platform(self) -> AbstractChatPlatform:
        with self._lock:
            platform = self._platform
        if platform is None:
            raise NotConnectedError("Slack client not connected")
        return platform

    def on_message(self, handler: MessageHandler) -> None:
        self.sink.on_message(handler)

    def remove_handler(self, handler: MessageHandler) -> None:
        self.sink.remove_handler(handler)

    def category_rules(self) -> list[CategoryRule]:
        with self._lock:
            return list(self._rules)

    def update_category_keywords(self, rules: Sequence[CategoryRule]) -> None:
        with self._lock:
            self._rules = list(rules)
        _logger.info("category_rules_updated", count=len(rules))
        for index, rule in enumerate(rules, start=1):
            _logger.info(
                "category_rule",
                index=index,
                category=str(rule.category),
                display_name=rule.display_name,
                keywords=list(rule.keywords),
            )

    def settings(self) -> SlackSettings | None:
        with self._lock:
            return self._settings

    def update_settings(self, settings: SlackSettings | None) -> None:
        with self._lock:
            self._settings = settings
        _logger.info("slack_settings_updated", settings=settings)
