"""
Event Router

Consumes the live event feed one frame at a time, in order:
- New top-level post in a monitored channel -> welcome / auto-pin policy
- Threaded reply mentioning the bot        -> command, run as its own task
- Anything else                            -> ignored

A bad frame or a failing handler never stops the loop. Only cancellation or
a lost feed (FeedClosedError) ends it.
"""

import asyncio
import logging
from typing import Optional, Set

from pinkeeper.config import Settings
from pinkeeper.errors import GatewayError, MalformedEventError
from pinkeeper.integrations.gateway import ChatGateway
from pinkeeper.models.thread import BotIdentity, ChatEvent, EventType, PostedEvent
from pinkeeper.services.commands import CommandInterpreter

logger = logging.getLogger(__name__)


class EventRouter:
    def __init__(
        self,
        gateway: ChatGateway,
        settings: Settings,
        identity: BotIdentity,
        interpreter: CommandInterpreter,
    ):
        self.gateway = gateway
        self.settings = settings
        self.identity = identity
        self.interpreter = interpreter
        self.events_processed = 0
        self.events_dropped = 0
        self._command_tasks: Set[asyncio.Task] = set()

    async def run(self) -> None:
        """Process the feed until cancelled; FeedClosedError propagates."""
        logger.info("Event router started")
        async for frame in self.gateway.subscribe_events():
            try:
                event = self.gateway.decode_event(frame)
            except MalformedEventError as e:
                self.events_dropped += 1
                logger.error(f"Dropping malformed event: {e}. Frame: {e.frame[:500]!r}")
                continue

            try:
                await self.dispatch(event)
            except Exception:
                logger.exception(f"Unexpected error while handling {event.raw_type} event")
            self.events_processed += 1

    async def dispatch(self, event: ChatEvent) -> Optional[asyncio.Task]:
        """Route one decoded event; returns the spawned command task, if any."""
        if event.type != EventType.POSTED or event.payload is None:
            return None

        posted = event.payload
        if posted.author_id == self.identity.user_id:
            return None

        if posted.is_top_level:
            await self.handle_new_post(posted)
            return None

        if self.identity.is_mentioned_in(posted.text):
            return self.spawn_command(posted)

        return None

    async def handle_new_post(self, posted: PostedEvent) -> None:
        policy = self.settings.policy_for(posted.channel_id)
        if policy is None:
            return

        try:
            if policy.welcome_message:
                await self.gateway.post_ephemeral_message(
                    posted.channel_id, posted.author_id, policy.welcome_message
                )

            if policy.auto_pin:
                await self.gateway.pin_message(posted.channel_id, posted.id)
                logger.info(f"Pinned new post {posted.id} in {posted.channel_id}")
                if policy.welcome_thread_text:
                    await self.gateway.post_message(
                        posted.channel_id, policy.welcome_thread_text, root_id=posted.id
                    )
        except GatewayError as e:
            logger.error(f"Failed to apply channel policy to post {posted.id}: {e}")

    def spawn_command(self, posted: PostedEvent) -> asyncio.Task:
        task = asyncio.create_task(self.interpreter.handle(posted), name=f"command-{posted.id}")
        self._command_tasks.add(task)
        task.add_done_callback(self._command_done)
        return task

    def _command_done(self, task: asyncio.Task) -> None:
        self._command_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Command task {task.get_name()} failed: {error}", exc_info=error)

    async def drain(self) -> None:
        """Wait for running command tasks."""
        if self._command_tasks:
            await asyncio.gather(*self._command_tasks, return_exceptions=True)

    def cancel_commands(self) -> None:
        for task in list(self._command_tasks):
            task.cancel()
