"""Entry point for the funding rate arbitrage monitor.

Builds the engine, optionally embeds the FastAPI dashboard, and runs until
SIGINT/SIGTERM. With the dashboard enabled (default) the engine and the web
server share one asyncio event loop via uvicorn's programmatic API and
FastAPI's lifespan context manager.
"""

import asyncio
import signal
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from fundarb.config import AppSettings
from fundarb.engine import ArbitrageEngine, build_engine
from fundarb.logging import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the engine and the snapshot push loop; tear both down on exit."""
    from fundarb.dashboard.update_loop import dashboard_update_loop

    logger = get_logger("fundarb.main")
    engine: ArbitrageEngine = app.state.engine

    await engine.start()
    update_task = asyncio.create_task(dashboard_update_loop(app))
    logger.info("lifespan_started")

    yield

    update_task.cancel()
    try:
        await update_task
    except asyncio.CancelledError:
        pass

    await engine.close()
    logger.info("funding_rate_monitor_stopped")


async def _run_headless(engine: ArbitrageEngine) -> None:
    """Run the engine without a web server until a stop signal arrives."""
    logger = get_logger("fundarb.main")
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)

    try:
        await engine.start()
        await stop_event.wait()
    finally:
        await engine.close()
        logger.info("funding_rate_monitor_stopped")


async def run() -> None:
    """Run the monitor, with or without the dashboard (DASHBOARD_ENABLED)."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("fundarb.main")

    engine = build_engine(settings)

    if settings.dashboard.enabled:
        from fundarb.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.engine = engine
        app.state.update_interval = settings.dashboard.update_interval

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            refresh_interval_ms=settings.engine.refresh_interval_ms,
            threshold=str(settings.engine.min_spread_threshold_pct),
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        await uvicorn.Server(config).serve()
    else:
        logger.info(
            "starting_without_dashboard",
            refresh_interval_ms=settings.engine.refresh_interval_ms,
            threshold=str(settings.engine.min_spread_threshold_pct),
            stream_enabled=settings.stream.enabled,
        )
        await _run_headless(engine)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
