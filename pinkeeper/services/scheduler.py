"""
Sweep Scheduler

Drives the pin lifecycle engine: one concurrent task per monitored channel
per cycle, all awaited before sleeping. Cycles never overlap.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

from pinkeeper.config import ChannelPolicy, Settings
from pinkeeper.models.pins import PinDecision
from pinkeeper.services.pins import PinLifecycleEngine

logger = logging.getLogger(__name__)


class SweepScheduler:
    def __init__(
        self,
        engine: PinLifecycleEngine,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.settings = settings
        self.sleep = sleep
        self._lock = asyncio.Lock()
        self.cycles_completed = 0

    async def _sweep(self, policy: ChannelPolicy) -> List[PinDecision]:
        try:
            return await self.engine.sweep_channel(policy)
        except Exception:
            logger.exception(f"Sweep of channel {policy.channel_id} failed")
            return []

    async def run_cycle(self) -> Dict[str, List[PinDecision]]:
        """Sweep every monitored channel once; returns decisions per channel."""
        async with self._lock:
            policies = list(self.settings.channels)
            results = await asyncio.gather(*(self._sweep(policy) for policy in policies))
            self.cycles_completed += 1
            return {policy.channel_id: decisions for policy, decisions in zip(policies, results)}

    async def run_forever(self) -> None:
        interval = self.settings.sweep_interval_minutes * 60
        logger.info(
            f"Sweeping {len(self.settings.channels)} channel(s) every "
            f"{self.settings.sweep_interval_minutes} minute(s)"
        )
        while True:
            await self.run_cycle()
            await self.sleep(interval)
