"""
Unit Tests for the Sweep Scheduler
"""

from unittest.mock import AsyncMock

import pytest

from pinkeeper.config import ChannelPolicy, Settings
from pinkeeper.models.pins import PinAction
from pinkeeper.services.pins import PinLifecycleEngine
from pinkeeper.services.scheduler import SweepScheduler


class StopLoop(Exception):
    pass


@pytest.fixture
def two_channel_settings(tmp_path):
    return Settings(
        _env_file=None,
        bot_user_id="UBOT",
        channels=[ChannelPolicy(channel_id="C100"), ChannelPolicy(channel_id="C200")],
        sweep_interval_minutes=15,
        archive_root=tmp_path,
    )


@pytest.mark.asyncio
async def test_cycle_sweeps_every_channel(gateway, identity, two_channel_settings):
    for channel in ("C100", "C200"):
        root = gateway.add_message(channel, "U111", "question")
        gateway.add_pin(root)
    gateway.advance(days=8)
    engine = PinLifecycleEngine(gateway, two_channel_settings, identity, clock=lambda: gateway.now)
    scheduler = SweepScheduler(engine, two_channel_settings)

    results = await scheduler.run_cycle()

    assert set(results) == {"C100", "C200"}
    assert all(d.action == PinAction.NEED_WARNING for ds in results.values() for d in ds)
    assert scheduler.cycles_completed == 1


@pytest.mark.asyncio
async def test_crashing_channel_does_not_stop_cycle(two_channel_settings):
    engine = AsyncMock(spec=PinLifecycleEngine)

    async def sweep(policy):
        if policy.channel_id == "C100":
            raise RuntimeError("boom")
        return ["ok"]

    engine.sweep_channel.side_effect = sweep
    scheduler = SweepScheduler(engine, two_channel_settings)

    results = await scheduler.run_cycle()

    assert results == {"C100": [], "C200": ["ok"]}


@pytest.mark.asyncio
async def test_run_forever_sleeps_between_cycles(two_channel_settings):
    engine = AsyncMock(spec=PinLifecycleEngine)
    engine.sweep_channel.return_value = []
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            raise StopLoop()

    scheduler = SweepScheduler(engine, two_channel_settings, sleep=fake_sleep)

    with pytest.raises(StopLoop):
        await scheduler.run_forever()

    assert sleeps == [15 * 60, 15 * 60]
    assert scheduler.cycles_completed == 2
