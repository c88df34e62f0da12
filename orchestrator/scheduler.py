"""Periodic cycle runner on the schedule library."""
import logging
import threading
import schedule
import time

logger = logging.getLogger("tradecycle.scheduler")


class CycleScheduler:
    """Invoke ``run_cycle()`` every ``interval_seconds``.

    ``run_cycle`` returns a CycleReport; an ERRORED outcome or a raised
    exception counts as a failure. Five consecutive failures log a critical.
    """

    def __init__(self, run_cycle, interval_seconds=300, scheduler=None):
        self.run_cycle = run_cycle
        self.interval = interval_seconds
        self._scheduler = scheduler or schedule.Scheduler()
        self._thread = None
        self._running = False
        self._callbacks = []
        self.consecutive_failures = 0

    def on_cycle(self, callback):
        """Register callback called with the report after each cycle."""
        self._callbacks.append(callback)

    def start(self):
        """Start cycles on a daemon thread."""
        if self._running:
            return
        self._running = True
        self._scheduler.every(self.interval).seconds.do(self._cycle_job)

        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info(f"Scheduler started (every {self.interval}s)")

    def run_forever(self):
        """Run cycles in the foreground until interrupted."""
        self._running = True
        self._scheduler.every(self.interval).seconds.do(self._cycle_job)
        logger.info(f"Scheduler running in foreground (every {self.interval}s)")
        try:
            self._run_loop()
        finally:
            self._running = False
            self._scheduler.clear()

    def stop(self):
        """Stop scheduled cycles."""
        self._running = False
        self._scheduler.clear()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Scheduler stopped")

    def _run_loop(self):
        # Run one cycle immediately
        self._cycle_job()
        while self._running:
            self._scheduler.run_pending()
            time.sleep(1)

    def _cycle_job(self):
        try:
            report = self.run_cycle()
        except Exception as e:
            self._record_failure(str(e))
            return

        if report.exit_code != 0:
            self._record_failure(report.reason)
        else:
            self.consecutive_failures = 0

        for cb in self._callbacks:
            try:
                cb(report)
            except Exception as e:
                logger.warning(f"Callback error: {e}")

    def _record_failure(self, reason):
        self.consecutive_failures += 1
        logger.error(f"Cycle failed ({self.consecutive_failures} consecutive): {reason}")
        if self.consecutive_failures >= 5:
            logger.critical("5+ consecutive cycle failures!")
