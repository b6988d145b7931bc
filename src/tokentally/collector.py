import asyncio
import time

import structlog

from tokentally.errors import NoDataFoundError
from tokentally.metrics import MetricsUpdater
from tokentally.query import UsageQuery

logger = structlog.get_logger()


class Collector:
    """
    Collector periodically recomputes usage statistics from the
    logs on disk and publishes them to the metrics store. Log
    loading and aggregation are blocking, so each refresh runs in
    a worker thread and only the result comes back to the loop.
    """

    def __init__(
        self,
        query: "UsageQuery",
        metrics_updater: "MetricsUpdater",
        refresh_interval_seconds: "int" = 60,
    ) -> "None":
        self._query = query
        self._metrics = metrics_updater
        self._interval = refresh_interval_seconds
        self._stop_event: "asyncio.Event" = asyncio.Event()

    def stop(self) -> "None":
        """
        signals the collector loop to stop after the current cycle.
        """
        self._stop_event.set()

    async def run(self) -> "None":
        """
        runs the refresh loop until stop() is called.
        """
        while not self._stop_event.is_set():
            logger.info("refresh_cycle_start", root=str(self._query.root))
            await self.refresh()
            logger.info("refresh_cycle_end")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass

    async def refresh(self) -> "bool":
        """
        runs one refresh. Returns True when metrics were updated.
        """
        cycle_start = time.monotonic()
        ok = False

        try:
            stats = await asyncio.to_thread(self._query.get_usage_statistics)
        except NoDataFoundError:
            # usually a first run or a log directory we can't read
            logger.warning("no_usage_data", root=str(self._query.root))
            self._metrics.inc_refresh_error("no_data")
        except Exception:
            logger.exception("refresh_error", root=str(self._query.root))
            self._metrics.inc_refresh_error("refresh")
        else:
            self._metrics.update(stats)
            self._metrics.set_last_refresh_success(time.time())
            logger.debug(
                "usage_published",
                total_cost=stats.total_cost,
                total_sessions=stats.total_sessions,
            )
            ok = True

        self._metrics.observe_refresh_duration(time.monotonic() - cycle_start)
        return ok
