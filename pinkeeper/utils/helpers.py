"""
Shared Utility Functions

Naming and formatting helpers for thread archives.
"""

import re
import logging
from datetime import datetime
from typing import Dict, Iterable

from pinkeeper.models.thread import ThreadMessage

logger = logging.getLogger(__name__)

ARCHIVE_FOLDER_TIME_FORMAT = "%Y.%m.%d %H-%M"
TRANSCRIPT_TIME_FORMAT = "%d.%m.%Y %H:%M:%S"
ATTACHMENT_LINE = "File attached - {name}"

# Characters not allowed in file names on common filesystems
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str, fallback: str = "unnamed") -> str:
    """
    Make a string safe to use as a single path component.

    Path separators and reserved characters become "_", leading/trailing
    dots and spaces are dropped so "../x" cannot escape the parent folder.

    Args:
        name: Raw name (user display name, uploaded file name)
        fallback: Used when nothing usable remains

    Returns:
        Safe file or folder name
    """
    cleaned = _UNSAFE_CHARS.sub("_", name or "").strip(" .")
    return cleaned or fallback


def to_local(value: datetime) -> datetime:
    """Convert to the local timezone; naive values are returned unchanged."""
    if value.tzinfo is None:
        return value
    return value.astimezone()


def archive_folder_name(created_at: datetime, author_name: str) -> str:
    """Folder name for a thread archive: "<yyyy.MM.dd HH-mm> <author>" in local time."""
    stamp = to_local(created_at).strftime(ARCHIVE_FOLDER_TIME_FORMAT)
    return sanitize_filename(f"{stamp} {author_name}")


def format_transcript(messages: Iterable[ThreadMessage], names: Dict[str, str]) -> str:
    """
    Render messages as the plain-text transcript.

    One block per message:
        <local timestamp>
        <display name>: <body>
        File attached - <name>     (one line per attachment)
    """
    blocks = []
    for msg in messages:
        stamp = to_local(msg.created_at).strftime(TRANSCRIPT_TIME_FORMAT)
        author = names.get(msg.author_id, msg.author_id)
        block = f"{stamp}\n{author}: {msg.text}\n"
        for attachment in msg.attachments:
            block += ATTACHMENT_LINE.format(name=attachment.name) + "\n"
        blocks.append(block)
    return "".join(blocks)
