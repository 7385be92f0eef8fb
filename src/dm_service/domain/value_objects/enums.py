from __future__ import annotations

from enum import StrEnum


class EventName(StrEnum):
    """Names of events pushed to live connections."""

    NEW_MESSAGE = "newMessage"
    MESSAGES_READ = "messagesRead"
    MESSAGE_DELETED = "messageDeleted"
    ONLINE_USERS = "getOnlineUsers"
    UNREAD_COUNTS = "unreadCounts"
    MESSAGE_SENT = "message.sent"
    PONG = "pong"
    ERROR = "error"
