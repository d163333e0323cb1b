"""Background reconciliation cog: owns the lifetime of the tick scheduler."""

from __future__ import annotations

import discord
from discord.ext import commands

from guildkeeper.reconciliation.tick_scheduler import TickScheduler
from guildkeeper.util.logger import get_logger

logger = get_logger("scheduler_cog")


class ReconciliationCog(commands.Cog):
    """Starts the tick scheduler once the gateway session is ready."""

    def __init__(self, bot: discord.Bot, scheduler: TickScheduler) -> None:
        self.bot = bot
        self.scheduler = scheduler

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        # on_ready fires again after reconnects
        if self.scheduler.is_running:
            return
        self.scheduler.start()
        logger.info("[RECONCILIATION] Started (interval=%.1fs)", self.scheduler.interval)

    def cog_unload(self) -> None:
        self.scheduler.stop()
        logger.info("[RECONCILIATION] Stopped")


def setup(bot: discord.Bot, scheduler: TickScheduler) -> None:
    bot.add_cog(ReconciliationCog(bot, scheduler))
