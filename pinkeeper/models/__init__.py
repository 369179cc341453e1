# Shared data models
from pinkeeper.models.thread import (
    Attachment,
    BotIdentity,
    ChatEvent,
    EventType,
    PinnedMessage,
    PostedEvent,
    ThreadMessage,
    ThreadSnapshot,
    ThreadTail,
    UserProfile,
)
from pinkeeper.models.pins import PinAction, PinDecision
from pinkeeper.models.archive import ArchiveResult

__all__ = [
    "Attachment",
    "BotIdentity",
    "ChatEvent",
    "EventType",
    "PinnedMessage",
    "PostedEvent",
    "ThreadMessage",
    "ThreadSnapshot",
    "ThreadTail",
    "UserProfile",
    "PinAction",
    "PinDecision",
    "ArchiveResult",
]
