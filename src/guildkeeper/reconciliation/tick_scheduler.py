"""Fixed-period driver for the reconciliation passes.

Every tick reads the tracked guild ids, runs one task per guild concurrently
and waits for the whole wave before the next tick. Inside a guild task the
reconcilers run one after another because they share that guild's records.
A wave that outlasts the period delays the next tick; missed ticks are
dropped, never queued.
"""

from __future__ import annotations

import asyncio
from typing import List, Protocol, Sequence

from guildkeeper.datatypes.discord_datatypes import GuildID
from guildkeeper.datatypes.errors import ContractViolationError
from guildkeeper.datatypes.guild_data import GuildData
from guildkeeper.reconciliation.error_aggregator import iter_leaf_errors
from guildkeeper.util.logger import get_logger

logger = get_logger("tick_scheduler")


class Reconciler(Protocol):
    name: str

    async def reconcile(self, guild_data: GuildData) -> None: ...


class GuildDataSource(Protocol):
    def get_guild_ids(self) -> List[GuildID]: ...

    async def get_data(self, guild_id: GuildID) -> GuildData: ...

    async def save(self, guild_id: GuildID) -> None: ...


class TickScheduler:
    """
    Runs every reconciler against every tracked guild once per ``interval`` seconds.

    Args:
        data_store: Source of tracked guild ids and their ``GuildData``.
        reconcilers: Passes applied to each guild, in order.
        interval: Tick period in seconds.
    """

    def __init__(
        self,
        data_store: GuildDataSource,
        reconcilers: Sequence[Reconciler],
        *,
        interval: float = 1.0,
    ) -> None:
        self.data_store = data_store
        self.reconcilers = list(reconcilers)
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # One tick
    # ------------------------------------------------------------------

    async def run_tick(self) -> None:
        """Reconcile every tracked guild concurrently and wait for all of them."""
        guild_ids = self.data_store.get_guild_ids()
        if not guild_ids:
            return
        await asyncio.gather(*(self._tick_guild(guild_id) for guild_id in guild_ids))

    async def _tick_guild(self, guild_id: GuildID) -> None:
        try:
            guild_data = await self.data_store.get_data(guild_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[TICK SCHEDULER] Could not load data for guild %s: %s", guild_id, exc)
            return

        for reconciler in self.reconcilers:
            try:
                await reconciler.reconcile(guild_data)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._log_failure(reconciler.name, guild_id, exc)

        try:
            await self.data_store.save(guild_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[TICK SCHEDULER] Could not save data for guild %s: %s", guild_id, exc)

    @staticmethod
    def _log_failure(name: str, guild_id: GuildID, exc: Exception) -> None:
        logger.warning("[TICK SCHEDULER] Error in %s update for guild %s: %s", name, guild_id, exc)
        for leaf in iter_leaf_errors(exc):
            notes = "; ".join(getattr(leaf, "__notes__", ()))
            level = "error" if isinstance(leaf, ContractViolationError) else "warning"
            getattr(logger, level)(
                "[TICK SCHEDULER]   %s: %s%s", type(leaf).__name__, leaf, f" ({notes})" if notes else ""
            )

    # ------------------------------------------------------------------
    # Loop lifecycle
    # ------------------------------------------------------------------

    async def _run_loop(self) -> None:
        loop = asyncio.get_running_loop()
        logger.info("[TICK SCHEDULER] Starting reconciliation loop (interval=%.1fs)", self.interval)
        try:
            next_tick = loop.time() + self.interval
            while True:
                delay = next_tick - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)

                started = loop.time()
                try:
                    await self.run_tick()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[TICK SCHEDULER] Unexpected error during tick: %s", exc)

                next_tick = started + self.interval
                if loop.time() > next_tick:
                    logger.debug(
                        "[TICK SCHEDULER] Tick took %.2fs, longer than the %.1fs period",
                        loop.time() - started, self.interval,
                    )
        except asyncio.CancelledError:
            logger.info("[TICK SCHEDULER] Reconciliation loop cancelled")
            raise

    def start(self) -> None:
        """Start the background loop if it is not already running."""
        if self.is_running:
            logger.warning("[TICK SCHEDULER] Loop already running")
            return
        self._task = asyncio.create_task(self._run_loop(), name="guildkeeper-tick-scheduler")

    def stop(self) -> None:
        """Request cancellation without waiting for the loop to unwind."""
        if self.is_running:
            self._task.cancel()  # type: ignore[union-attr]

    async def shutdown(self) -> None:
        """Cancel the loop and wait until the current wave has been aborted."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                # Only the loop's own cancellation is expected here
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
        logger.info("[TICK SCHEDULER] Scheduler shutdown complete")
