"""
Poll loop driving enumerate -> report -> sleep.

One background thread runs the loop; cycles never overlap. The loop has no
end condition of its own and runs until ``stop()`` is called.
"""

import threading
import time
from typing import Optional

from homedash_sidecar import metrics
from homedash_sidecar.config import SidecarContext
from homedash_sidecar.models import ReportResult


class PollLoop:
    """Runs discovery cycles on a fixed interval."""

    def __init__(self, context: SidecarContext, enumerator, reporter):
        """
        Args:
            context: Sidecar configuration and logger
            enumerator: ApplicationEnumerator
            reporter: ApplicationReporter
        """
        self.interval = context.config.interval_seconds
        self.enumerator = enumerator
        self.reporter = reporter
        self.logger = context.logger.getChild('poller')

        self.last_result: Optional[ReportResult] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> ReportResult:
        """Run a single enumerate -> report cycle."""
        start_time = time.time()
        metrics.cycles_total.inc()

        applications = self.enumerator.list_applications()
        self.logger.debug(f"Trying to add: {[app.name for app in applications]}")
        result = self.reporter.report(applications)

        duration = time.time() - start_time
        metrics.cycle_duration_seconds.set(duration)
        metrics.last_cycle_timestamp.set(time.time())
        self.logger.debug(f"Cycle completed in {duration:.2f} seconds")

        self.last_result = result
        return result

    def run_forever(self):
        """Run cycles until stopped."""
        self.logger.info(f"Poll loop started, interval {self.interval:g} seconds")

        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                self.logger.error(f"Error in poll cycle: {e}", exc_info=True)

            # Returns early when stop() is called
            self._stop_event.wait(self.interval)

        self.logger.info("Poll loop stopped")

    def start(self):
        """Start the loop in a daemon thread."""
        if self.running:
            self.logger.warning("Poll loop already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name='homedash-poller', daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5):
        """Signal the loop to stop and wait for the thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def wait(self):
        """Block until the loop thread ends."""
        while self.running:
            self._thread.join(timeout=1)
