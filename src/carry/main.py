"""Entry point for the funding carry engine.

Wires the components together and runs the orchestrator until SIGINT or
SIGTERM requests a graceful stop.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. VenueClient (SnapshotVenueClient in paper mode)
4. PositionPlanner (target size from StrategySettings)
5. RateEngine (protocol constants from ProtocolSettings)
6. Dispatcher (PaperDispatcher in paper mode)
7. Orchestrator (fetch -> evaluate -> dispatch loop)
"""

import asyncio
import signal
from typing import Any

from carry.config import AppSettings
from carry.engine import RateEngine
from carry.execution.paper_dispatcher import PaperDispatcher
from carry.logging import get_logger, setup_logging
from carry.orchestrator import Orchestrator
from carry.position.planner import PositionPlanner
from carry.venue.snapshot import SnapshotVenueClient


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT connect the venue client; that happens in run().

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    # 3. Venue client: paper mode replays a recorded snapshot
    venue_client = SnapshotVenueClient(path=settings.venue.snapshot_path)

    # 4-5. Planner and engine
    constants = settings.protocol.to_constants()
    planner = PositionPlanner(settings.strategy, constants=constants)
    engine = RateEngine(planner, constants=constants)

    # 6. Dispatcher
    dispatcher = PaperDispatcher()

    # 7. Orchestrator
    orchestrator = Orchestrator(
        settings=settings,
        venue_client=venue_client,
        engine=engine,
        dispatcher=dispatcher,
    )

    return {
        "venue_client": venue_client,
        "planner": planner,
        "engine": engine,
        "dispatcher": dispatcher,
        "orchestrator": orchestrator,
    }


def _setup_signal_handlers(orchestrator: Orchestrator) -> None:
    """Register SIGINT/SIGTERM to stop the orchestrator gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("carry.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(orchestrator.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def run() -> None:
    """Run the engine until a shutdown signal arrives."""
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("carry.main")

    # 3-7. Build all components
    components = _build_components(settings)
    _setup_signal_handlers(components["orchestrator"])

    logger.info(
        "funding_carry_engine_starting",
        mode=settings.strategy.mode,
        snapshot_path=settings.venue.snapshot_path,
        scan_interval=settings.strategy.scan_interval,
    )

    try:
        await components["venue_client"].connect()
        await components["orchestrator"].start()
    finally:
        await components["venue_client"].close()
        logger.info("funding_carry_engine_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
