"""
Scheduler that drives the registered check modules.

Each tick runs every module once, in registration order. Ticks never
overlap, a failed or hung module never keeps the others from running, and a
failed cycle is not retried within its tick: the next tick is the retry.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Optional

from .models import CycleResult, TickReport
from .modules import CheckModule

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs check modules on a fixed interval."""

    def __init__(
        self,
        modules: Sequence[CheckModule],
        interval: float,
        cycle_timeout: float,
        before_tick: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            modules: Configured modules, run in this order
            interval: Seconds between the starts of two ticks
            cycle_timeout: Seconds a single module cycle may take
            before_tick: Coroutine run at the start of every tick
        """
        self.modules = list(modules)
        self.interval = interval
        self.cycle_timeout = cycle_timeout
        self.before_tick = before_tick
        self.ticks = 0
        self.running = False
        self.shutdown_event = asyncio.Event()

    async def _run_module(self, module: CheckModule, stop_event: asyncio.Event) -> CycleResult:
        started = time.monotonic()
        logger.info(f"Running {module.name} module...")
        try:
            await asyncio.wait_for(module.run(stop_event), timeout=self.cycle_timeout)
        except asyncio.TimeoutError:
            error = f"cycle timed out after {self.cycle_timeout}s"
            logger.error(f"Error running module {module.name}: {error}")
            return CycleResult(module.name, ok=False, duration=time.monotonic() - started, error=error)
        except Exception as e:
            logger.error(f"Error running module {module.name}: {e}", exc_info=True)
            return CycleResult(module.name, ok=False, duration=time.monotonic() - started, error=str(e))
        return CycleResult(module.name, ok=True, duration=time.monotonic() - started)

    async def run_tick(self, stop_event: Optional[asyncio.Event] = None) -> TickReport:
        """Run every module once and report the outcome of each cycle."""
        stop_event = stop_event or self.shutdown_event
        self.ticks += 1
        report = TickReport(number=self.ticks)

        if self.before_tick is not None:
            try:
                await self.before_tick()
            except Exception as e:
                logger.warning(f"Pre-tick hook failed: {e}")

        for module in self.modules:
            if stop_event.is_set():
                logger.info("Stop requested, ending tick early")
                break
            report.results.append(await self._run_module(module, stop_event))

        if report.failed:
            logger.warning(f"Tick {report.number} finished with failed modules: {', '.join(report.failed)}")
        else:
            logger.debug(f"Tick {report.number} finished")
        return report

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run ticks until the stop event is set."""
        stop_event = stop_event or self.shutdown_event
        self.running = True
        logger.info(
            f"Scheduler starting with {len(self.modules)} modules "
            f"({', '.join(m.name for m in self.modules)}), interval {self.interval}s"
        )
        try:
            while self.running and not stop_event.is_set():
                started = time.monotonic()
                await self.run_tick(stop_event)

                delay = max(0.0, self.interval - (time.monotonic() - started))
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
                    break  # Shutdown requested
                except asyncio.TimeoutError:
                    pass  # Next tick
        finally:
            self.running = False
            logger.info("Scheduler stopped")

    def stop(self) -> None:
        """Stop after the current module cycle."""
        self.running = False
        self.shutdown_event.set()
