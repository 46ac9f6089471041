from deskhound.messaging.platform.adapter.slack import SlackPlatform

__all__ = ["SlackPlatform"]
