"""
Polling scheduler for plug telemetry collection.

A single timer task fans out one fetch task per plug on every tick and
publishes each result as it completes.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from ..devices.descriptor import DeviceDescriptor, TelemetrySnapshot
from ..exceptions import FetchError
from ..metrics.registry import MetricRegistry
from .status_fetcher import StatusFetcher

logger = logging.getLogger(__name__)

TelemetryCallback = Callable[[DeviceDescriptor, TelemetrySnapshot], Awaitable[None]]
PollErrorCallback = Callable[[DeviceDescriptor, FetchError], Awaitable[None]]


class PollingScheduler:
    """
    Drives telemetry polling for all configured plugs.

    Features:
    - Fixed interval, drift-free tick deadlines
    - One independent task per plug per tick
    - Per-plug failure isolation (log and keep last values)
    - No retry or backoff; every plug is tried fresh each tick
    """

    def __init__(
        self,
        devices: Sequence[DeviceDescriptor],
        fetcher: StatusFetcher,
        registry: MetricRegistry,
        interval: float,
    ):
        """
        Initialize the polling scheduler.

        Args:
            devices: Plugs to poll; fixed for the scheduler's lifetime.
            fetcher: Status fetcher shared by all poll tasks.
            registry: Metric registry receiving successful snapshots.
            interval: Seconds between ticks.
        """
        if interval <= 0:
            raise ValueError("Poll interval must be positive")

        self.devices = tuple(devices)
        self.fetcher = fetcher
        self.registry = registry
        self.interval = interval

        # Timer and in-flight fetches
        self._timer_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

        # Callbacks
        self._on_telemetry: Optional[TelemetryCallback] = None
        self._on_poll_error: Optional[PollErrorCallback] = None

        # State
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._ticks = 0
        self._successful_polls = 0
        self._failed_polls = 0

    async def start(self) -> None:
        """Start the polling timer. The first tick fires immediately."""
        if self._running:
            logger.warning("Polling scheduler already running")
            return

        logger.info(
            f"Starting polling scheduler for {len(self.devices)} plugs "
            f"(interval={self.interval}s)"
        )
        self._running = True
        self._shutdown_event.clear()
        self._timer_task = asyncio.create_task(
            self._tick_loop(),
            name="poll_timer",
        )

    async def stop(self) -> None:
        """Stop the timer and cancel fetches still in flight."""
        if not self._running:
            return

        logger.info("Stopping polling scheduler")
        self._running = False
        self._shutdown_event.set()

        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._inflight.clear()

        logger.info("Polling scheduler stopped")

    def dispatch_tick(self) -> List[asyncio.Task]:
        """
        Launch one fetch task per plug without waiting for any of them.

        Returns:
            The tasks created for this tick.
        """
        self._ticks += 1
        tasks = []

        for device in self.devices:
            task = asyncio.create_task(
                self._poll_device(device),
                name=f"poll_{device.name}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            tasks.append(task)

        logger.debug(f"Tick {self._ticks}: dispatched {len(tasks)} polls")
        return tasks

    async def poll_once(self) -> None:
        """Run a single tick and wait until all its fetches have finished."""
        tasks = self.dispatch_tick()
        if tasks:
            await asyncio.gather(*tasks)

    async def _tick_loop(self) -> None:
        """Fire ticks at start + k * interval until shutdown."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while self._running:
            try:
                self.dispatch_tick()
            except Exception as e:
                logger.error(f"Unexpected error dispatching tick: {e}")

            next_tick += self.interval
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // self.interval) + 1
                next_tick += skipped * self.interval
                logger.warning(f"Poll timer fell behind, skipped {skipped} ticks")

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=max(0.0, next_tick - loop.time()),
                )
                # Shutdown event was set
                break
            except asyncio.TimeoutError:
                # Normal timeout, next tick is due
                pass

        logger.debug("Poll timer ended")

    async def _poll_device(self, device: DeviceDescriptor) -> None:
        """
        Fetch one plug and route the outcome.

        Args:
            device: Plug to poll.
        """
        try:
            snapshot = await self.fetcher.fetch(device)
        except FetchError as e:
            self._failed_polls += 1
            logger.error(
                f"Failed to get power data device={device.name} "
                f"host={device.host} error={e}",
                extra={"device": device.name, "host": device.host, "error": e.code},
            )
            if self._on_poll_error:
                try:
                    await self._on_poll_error(device, e)
                except Exception as cb_error:
                    logger.error(f"Error in poll_error callback: {cb_error}")
            return
        except Exception as e:
            self._failed_polls += 1
            logger.exception(
                f"Unexpected error polling device={device.name} host={device.host}: {e}"
            )
            return

        self.registry.set_metrics(device.name, device.host, snapshot)
        self._successful_polls += 1

        if self._on_telemetry:
            try:
                await self._on_telemetry(device, snapshot)
            except Exception as cb_error:
                logger.error(f"Error in telemetry callback: {cb_error}")

    def get_polling_stats(self) -> Dict[str, Any]:
        """
        Get polling statistics.

        Returns:
            Dictionary of polling stats.
        """
        return {
            "running": self._running,
            "devices": len(self.devices),
            "interval_seconds": self.interval,
            "ticks": self._ticks,
            "inflight_tasks": sum(1 for task in self._inflight if not task.done()),
            "successful_polls": self._successful_polls,
            "failed_polls": self._failed_polls,
        }

    def set_on_telemetry(self, callback: TelemetryCallback) -> None:
        """Set callback for successful polls."""
        self._on_telemetry = callback

    def set_on_poll_error(self, callback: PollErrorCallback) -> None:
        """Set callback for failed polls."""
        self._on_poll_error = callback

    @property
    def is_running(self) -> bool:
        """Check if the timer is running."""
        return self._running
