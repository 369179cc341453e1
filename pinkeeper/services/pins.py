"""
Pin Lifecycle Engine

Decides, once per sweep cycle, what happens to every pinned message of a
monitored channel, and applies the decision:

1. Closing reaction present          -> unpin silently
2. Latest reply by a human, too old  -> post a warning into the thread
3. Latest reply by the bot, too old  -> post closing notice, mark, unpin
4. Otherwise                         -> nothing

State is re-read from the chat platform every cycle; nothing is carried over.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pinkeeper.config import ChannelPolicy, Settings
from pinkeeper.errors import GatewayError
from pinkeeper.integrations.gateway import ChatGateway
from pinkeeper.models.pins import PinAction, PinDecision
from pinkeeper.models.thread import BotIdentity, PinnedMessage, ThreadMessage, ThreadTail

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_older_than(timestamp: datetime, days: int, now: datetime) -> bool:
    """True once at least `days` full days have passed (boundary counts as old)."""
    return now - timestamp >= timedelta(days=days)


def thread_tail(messages: List[ThreadMessage]) -> Optional[ThreadTail]:
    """Latest message of a thread by (creation time, id)."""
    if not messages:
        return None
    latest = max(messages, key=lambda m: (m.created_at, m.id))
    return ThreadTail(created_at=latest.created_at, author_id=latest.author_id)


def decide_action(
    pinned: PinnedMessage,
    tail: Optional[ThreadTail],
    policy: ChannelPolicy,
    bot_user_id: str,
    now: datetime,
) -> PinAction:
    """Pure decision function for one pinned message."""
    if policy.closing_reaction and policy.closing_reaction in pinned.reactions:
        return PinAction.NEED_UNPIN_SILENTLY

    if tail is None:
        return PinAction.DO_NOTHING

    if tail.author_id != bot_user_id:
        if is_older_than(tail.created_at, policy.days_before_warning, now):
            return PinAction.NEED_WARNING
    elif is_older_than(tail.created_at, policy.days_before_unpin, now):
        return PinAction.NEED_UNPIN_WITH_NOTICE

    return PinAction.DO_NOTHING


class PinLifecycleEngine:
    """Evaluates and applies pin decisions for monitored channels."""

    def __init__(
        self,
        gateway: ChatGateway,
        settings: Settings,
        identity: BotIdentity,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.gateway = gateway
        self.settings = settings
        self.identity = identity
        self.clock = clock

    async def fetch_tail(self, pinned: PinnedMessage) -> Optional[ThreadTail]:
        messages = await self.gateway.fetch_thread_messages(pinned.channel_id, pinned.id)
        return thread_tail(messages)

    async def evaluate_message(
        self, pinned: PinnedMessage, policy: ChannelPolicy, now: datetime
    ) -> PinDecision:
        """Decide for one pinned message. Never raises on gateway errors."""
        decision = PinDecision(
            channel_id=pinned.channel_id, message_id=pinned.id, action=PinAction.DO_NOTHING
        )

        if policy.closing_reaction and policy.closing_reaction in pinned.reactions:
            decision.action = decide_action(pinned, None, policy, self.identity.user_id, now)
            return decision

        # The thread cannot be older than its root, so young pins need no fetch
        min_days = min(policy.days_before_warning, policy.days_before_unpin)
        if not is_older_than(pinned.created_at, min_days, now):
            return decision

        try:
            tail = await self.fetch_tail(pinned)
        except GatewayError as e:
            logger.error(f"Could not read thread {pinned.id} in {pinned.channel_id}: {e}")
            decision.error = str(e)
            return decision

        decision.action = decide_action(pinned, tail, policy, self.identity.user_id, now)
        return decision

    async def apply_decision(self, decision: PinDecision, policy: ChannelPolicy) -> PinDecision:
        """Carry out a decision. Failures are logged and left for the next cycle."""
        channel_id, message_id = decision.channel_id, decision.message_id

        try:
            if decision.action == PinAction.NEED_WARNING:
                text = self.settings.warning_text.format(days=policy.days_before_warning)
                await self.gateway.post_message(channel_id, text, root_id=message_id)

            elif decision.action == PinAction.NEED_UNPIN_WITH_NOTICE:
                marker = policy.closing_reaction or self.settings.unpin_marker_emoji
                await self.gateway.post_message(channel_id, self.settings.closing_text, root_id=message_id)
                await self.gateway.add_reaction(channel_id, message_id, marker)
                await self.gateway.unpin_message(channel_id, message_id)

            elif decision.action == PinAction.NEED_UNPIN_SILENTLY:
                await self.gateway.unpin_message(channel_id, message_id)

            else:
                return decision

        except GatewayError as e:
            logger.error(f"Failed to apply {decision.action.value} to {message_id} in {channel_id}: {e}")
            decision.error = str(e)
            return decision

        decision.applied = True
        logger.info(f"Applied {decision.action.value} to {message_id} in {channel_id}")
        return decision

    async def _process(self, pinned: PinnedMessage, policy: ChannelPolicy, now: datetime) -> PinDecision:
        """Evaluate and apply; always returns a decision for the pinned message."""
        decision = PinDecision(
            channel_id=pinned.channel_id, message_id=pinned.id, action=PinAction.DO_NOTHING
        )
        try:
            decision = await self.evaluate_message(pinned, policy, now)
            return await self.apply_decision(decision, policy)
        except Exception as e:
            logger.exception(f"Unexpected error handling pin {pinned.id} in {pinned.channel_id}")
            decision.error = str(e) or type(e).__name__
            return decision

    async def sweep_channel(self, policy: ChannelPolicy) -> List[PinDecision]:
        """
        One cycle for one channel: one decision per currently pinned message.

        Returns:
            The decisions, in pin-list order. Empty when the pin list could
            not be read.
        """
        try:
            pinned_messages = await self.gateway.fetch_pinned_messages(policy.channel_id)
        except GatewayError as e:
            logger.error(f"Skipping channel {policy.channel_id} this cycle: {e}")
            return []

        now = self.clock()
        decisions = await asyncio.gather(
            *(self._process(pinned, policy, now) for pinned in pinned_messages)
        )

        acted = sum(1 for d in decisions if d.action != PinAction.DO_NOTHING)
        logger.info(
            f"Channel {policy.channel_id}: {len(decisions)} pinned, {acted} needing action"
        )
        return list(decisions)
