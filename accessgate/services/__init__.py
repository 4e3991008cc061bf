"""AccessGate services."""

from .chat_log import ChatLog, ChatMessage
from .notifications import Audience, Notification, NotificationComposer, NotificationSet
from .desk import AccessDesk, DeskReply, build_desk, get_desk

__all__ = [
    "AccessDesk",
    "Audience",
    "ChatLog",
    "ChatMessage",
    "DeskReply",
    "Notification",
    "NotificationComposer",
    "NotificationSet",
    "build_desk",
    "get_desk",
]
