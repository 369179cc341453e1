"""
Pin Lifecycle Models
"""

from pydantic import BaseModel
from enum import Enum


class PinAction(str, Enum):
    """What to do with a pinned message this cycle."""

    DO_NOTHING = "do_nothing"
    NEED_WARNING = "need_warning"
    NEED_UNPIN_SILENTLY = "need_unpin_silently"
    NEED_UNPIN_WITH_NOTICE = "need_unpin_with_notice"


class PinDecision(BaseModel):
    """One decision for one pinned message in one cycle."""

    channel_id: str
    message_id: str
    action: PinAction
    applied: bool = False
    error: str | None = None
