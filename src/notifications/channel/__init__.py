"""Channel adapter registry for mail and chat dispatch.

Fake adapters are used by default; real providers (SMTP, Chatwork) are
installed with set_channel() at startup.
"""

from enum import Enum


class ChannelType(Enum):
    MAIL = "mail"
    CHAT = "chat"


_channel_instances: dict[str, object] = {}


def get_channel(channel_type: ChannelType):
    """Return the configured adapter for ``channel_type`` (singleton per type)."""
    key = channel_type.value
    if key not in _channel_instances:
        if channel_type == ChannelType.MAIL:
            from notifications.channel.fake_mail import FakeMailAdapter

            _channel_instances[key] = FakeMailAdapter()
        elif channel_type == ChannelType.CHAT:
            from notifications.channel.fake_chat import FakeChatAdapter

            _channel_instances[key] = FakeChatAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[key]


def set_channel(channel_type: ChannelType, adapter) -> None:
    _channel_instances[channel_type.value] = adapter


def reset_channels() -> None:
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
