"""
Bot Runtime

Wires the services together and owns the two long-running paths:
the event router (live feed) and the sweep scheduler (timer).
"""

import asyncio
import logging
import os
import signal
from typing import Any, Callable, Dict, Optional

from pinkeeper.config import Settings
from pinkeeper.errors import FeedClosedError
from pinkeeper.integrations.gateway import ChatGateway
from pinkeeper.models.thread import BotIdentity
from pinkeeper.services.archiver import ThreadArchiver
from pinkeeper.services.commands import CommandInterpreter
from pinkeeper.services.pins import PinLifecycleEngine
from pinkeeper.services.router import EventRouter
from pinkeeper.services.scheduler import SweepScheduler

logger = logging.getLogger(__name__)


def terminate_process() -> None:
    """Ask the hosting server to shut down so a supervisor can restart it."""
    os.kill(os.getpid(), signal.SIGTERM)


class BotRuntime:
    def __init__(
        self,
        settings: Settings,
        gateway: ChatGateway,
        on_fatal: Callable[[], None] = terminate_process,
    ):
        self.settings = settings
        self.gateway = gateway
        self.on_fatal = on_fatal

        self.identity: Optional[BotIdentity] = None
        self.archiver = ThreadArchiver(gateway, settings.archive_root)
        self.engine: Optional[PinLifecycleEngine] = None
        self.scheduler: Optional[SweepScheduler] = None
        self.router: Optional[EventRouter] = None

        self.fatal_error: Optional[BaseException] = None
        self._tasks: list[asyncio.Task] = []

    async def resolve_identity(self) -> BotIdentity:
        if self.settings.bot_user_id:
            return BotIdentity(user_id=self.settings.bot_user_id, username=self.settings.bot_username)
        identity = await self.gateway.fetch_bot_identity()
        logger.info(f"Running as {identity.username} ({identity.user_id})")
        return identity

    async def setup(self) -> None:
        """Build the services; safe to call once before start()."""
        self.identity = await self.resolve_identity()
        self.engine = PinLifecycleEngine(self.gateway, self.settings, self.identity)
        self.scheduler = SweepScheduler(self.engine, self.settings)
        interpreter = CommandInterpreter(self.gateway, self.identity, self.archiver)
        self.router = EventRouter(self.gateway, self.settings, self.identity, interpreter)

    async def start(self) -> None:
        if self.router is None:
            await self.setup()

        feed = asyncio.create_task(self.router.run(), name="event-router")
        feed.add_done_callback(self._feed_done)
        sweep = asyncio.create_task(self.scheduler.run_forever(), name="sweep-scheduler")
        sweep.add_done_callback(self._sweep_done)
        self._tasks = [feed, sweep]
        logger.info(f"{self.settings.app_name} started, monitoring {len(self.settings.channels)} channel(s)")

    def _feed_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, FeedClosedError):
            logger.critical(f"Event feed lost, bot is down: {error}")
        elif error is not None:
            logger.critical(f"Event router crashed: {error}", exc_info=error)
        else:
            logger.critical("Event feed ended unexpectedly")
        self.fatal_error = error or FeedClosedError("event feed ended")
        self.on_fatal()

    def _sweep_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        logger.critical(f"Sweep scheduler stopped: {error}", exc_info=error)
        self.fatal_error = error
        self.on_fatal()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        if self.router is not None:
            self.router.cancel_commands()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info(f"{self.settings.app_name} stopped")

    @property
    def healthy(self) -> bool:
        return self.fatal_error is None and bool(self._tasks) and not any(t.done() for t in self._tasks)

    def status(self) -> Dict[str, Any]:
        return {
            "healthy": self.healthy,
            "bot_user_id": self.identity.user_id if self.identity else None,
            "channels": [p.channel_id for p in self.settings.channels],
            "events_processed": self.router.events_processed if self.router else 0,
            "events_dropped": self.router.events_dropped if self.router else 0,
            "sweep_cycles": self.scheduler.cycles_completed if self.scheduler else 0,
            "fatal_error": str(self.fatal_error) if self.fatal_error else None,
        }
