"""Orchestrator -- runs the fetch -> evaluate -> dispatch loop.

Each cycle:
  1. FETCH: slot time, the hedge's perp and spot markets, the perp oracle
     reading and the user account from the VenueClient
  2. EVALUATE: RateEngine.evaluate_cycle (pure, no I/O)
  3. DISPATCH: hand the RebalancePlan to the Dispatcher

Cycles run one at a time. A failed cycle is logged and the loop backs off
before trying again; the engine itself never retries. Because cycles are
stateless, retrying from a fresh fetch is always safe.
"""

import asyncio

from solders.pubkey import Pubkey

from carry.config import AppSettings
from carry.engine import AccountState, RateEngine
from carry.exceptions import EngineError, VenueError
from carry.execution.dispatcher import Dispatcher
from carry.logging import bind_cycle_context, clear_cycle_context, get_logger
from carry.models import DispatchResult, OracleReading, RebalancePlan
from carry.venue.addresses import get_user_public_key
from carry.venue.client import VenueClient

logger = get_logger(__name__)


class Orchestrator:
    """Main loop wiring the venue client, engine and dispatcher.

    Args:
        settings: Application-wide settings.
        venue_client: Source of market, oracle and account state.
        engine: Rate engine evaluating each cycle.
        dispatcher: Receives every non-empty plan.
    """

    def __init__(
        self,
        settings: AppSettings,
        venue_client: VenueClient,
        engine: RateEngine,
        dispatcher: Dispatcher,
    ) -> None:
        self._settings = settings
        self._venue_client = venue_client
        self._engine = engine
        self._dispatcher = dispatcher
        self._running = False
        self._cycle_lock = asyncio.Lock()
        self._cycle_count = 0
        self._failed_cycles = 0
        self._last_plan: RebalancePlan | None = None

    async def start(self) -> None:
        """Run cycles until stop() is called."""
        strategy = self._settings.strategy
        logger.info(
            "orchestrator_starting",
            mode=strategy.mode,
            perp_market_index=strategy.perp_market_index,
            spot_market_index=strategy.spot_market_index,
            target_position_size=str(strategy.target_position_size),
        )
        self._running = True
        try:
            await self._run_loop()
        finally:
            logger.info("orchestrator_stopped", cycles=self._cycle_count)

    async def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""
        logger.info("orchestrator_stopping_gracefully")
        self._running = False

    async def _run_loop(self) -> None:
        strategy = self._settings.strategy
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                break
            except EngineError as e:
                self._failed_cycles += 1
                logger.error(
                    "cycle_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                )
                await asyncio.sleep(strategy.error_backoff)
                continue
            await asyncio.sleep(strategy.scan_interval)

    async def run_cycle(self) -> list[DispatchResult]:
        """Run one fetch -> evaluate -> dispatch cycle.

        Returns:
            Dispatch results for this cycle's plan (empty if nothing to do).

        Raises:
            EngineError: Any fetch or evaluation failure; nothing is dispatched.
        """
        async with self._cycle_lock:
            self._cycle_count += 1
            market_id = self._settings.strategy.perp_market_index
            bind_cycle_context(self._cycle_count, market_id)
            try:
                account_state, reading, now = await self._fetch_inputs()
                plan = self._engine.evaluate_cycle(market_id, account_state, reading, now)
                self._last_plan = plan

                if plan.is_empty:
                    logger.info("cycle_no_action", should_close=plan.should_close)
                    return []

                results = await self._dispatcher.dispatch(plan)
                logger.info(
                    "cycle_dispatched",
                    should_close=plan.should_close,
                    intents=len(results),
                )
                return results
            finally:
                clear_cycle_context()

    async def _fetch_inputs(self) -> tuple[AccountState, OracleReading, int]:
        """Fetch everything one evaluation needs.

        Raises:
            VenueError: Wrapping any collaborator failure.
            EngineError: Lookup errors from the market cache pass through.
        """
        venue = self._settings.venue
        strategy = self._settings.strategy
        try:
            slot = await self._venue_client.get_slot()
            now = await self._venue_client.current_slot_time(slot)

            markets = await self._venue_client.load_markets(
                [strategy.perp_market_index],
                [strategy.spot_market_index],
                venue.program_id,
            )
            perp_market = markets.perp(strategy.perp_market_index)
            reading = await self._venue_client.get_oracle_reading(perp_market.oracle)

            user_key = get_user_public_key(
                Pubkey.from_string(venue.authority),
                venue.subaccount_id,
                Pubkey.from_string(venue.program_id),
            )
            user = await self._venue_client.get_user_snapshot(str(user_key))
        except EngineError:
            raise
        except Exception as e:
            raise VenueError(f"failed to fetch cycle inputs: {e}") from e

        logger.debug("cycle_inputs_fetched", slot=slot, now=now, user=str(user_key))
        account_state = AccountState(
            markets=markets,
            user=user,
            spot_market_index=strategy.spot_market_index,
        )
        return account_state, reading, now

    def get_status(self) -> dict:
        """Return current orchestrator status.

        Returns:
            Dict with: running, mode, cycles, failed_cycles, last_plan_empty.
        """
        return {
            "running": self._running,
            "mode": self._settings.strategy.mode,
            "cycles": self._cycle_count,
            "failed_cycles": self._failed_cycles,
            "last_plan_empty": self._last_plan.is_empty if self._last_plan is not None else None,
        }

    @property
    def is_running(self) -> bool:
        """Whether the main loop is active."""
        return self._running
