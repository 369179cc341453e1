"""
Command Interpreter

Parses "@bot <command>" replies posted inside a thread and runs the command.
All replies go to the requesting user only.
"""

import logging
import re
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from pinkeeper.errors import GatewayError
from pinkeeper.integrations.gateway import ChatGateway
from pinkeeper.models.thread import BotIdentity, PostedEvent
from pinkeeper.services.archiver import ThreadArchiver

logger = logging.getLogger(__name__)

DOWNLOAD = "download"

COMMAND_HELP = {
    DOWNLOAD: "archive this thread with all of its files",
}

ACK_TEXT = "Archiving the thread, this may take a moment..."
REJECTION_TEXT = "Unknown command. Available commands:\n{commands}"

_SEPARATORS = re.compile(r"[\W_]+")


def tokenize(text: str, mention_tokens: Iterable[str]) -> List[str]:
    """Drop the bot mention, split on punctuation and whitespace, lower-case."""
    for token in mention_tokens:
        text = text.replace(token, " ")
    return [t.lower() for t in _SEPARATORS.split(text) if t]


def match_command(tokens: Iterable[str]) -> Optional[str]:
    """First token naming a known command, or None."""
    for token in tokens:
        if token in COMMAND_HELP:
            return token
    return None


def rejection_text() -> str:
    commands = "\n".join(f"- {name}: {help_text}" for name, help_text in COMMAND_HELP.items())
    return REJECTION_TEXT.format(commands=commands)


class CommandInterpreter:
    def __init__(self, gateway: ChatGateway, identity: BotIdentity, archiver: ThreadArchiver):
        self.gateway = gateway
        self.identity = identity
        self.archiver = archiver
        self._handlers: Dict[str, Callable[[PostedEvent], Awaitable[None]]] = {
            DOWNLOAD: self._download,
        }

    async def handle(self, event: PostedEvent) -> Optional[str]:
        """Run the command in a threaded reply; returns the command name or None."""
        command = match_command(tokenize(event.text, self.identity.mention_tokens))

        if command is None:
            logger.info(f"Rejected command from {event.author_id}: {event.text!r}")
            await self._reply(event, rejection_text())
            return None

        logger.info(f"Command {command!r} from {event.author_id} in thread {event.root_id}")
        await self._handlers[command](event)
        return command

    async def _download(self, event: PostedEvent) -> None:
        await self._reply(event, ACK_TEXT)
        await self.archiver.archive(event.channel_id, event.root_id, requested_by=event.author_id)

    async def _reply(self, event: PostedEvent, text: str) -> None:
        try:
            await self.gateway.post_ephemeral_message(
                event.channel_id, event.author_id, text, root_id=event.root_id or None
            )
        except GatewayError as e:
            logger.error(f"Could not reply to {event.author_id}: {e}")
