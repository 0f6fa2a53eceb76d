import logging
import threading
import time
from typing import Callable, Optional

log = logging.getLogger(__name__)


class Poller:
    """
    Periodic fetch with an in-flight guard and a minimum spacing

    - at most one fetch runs at a time; overlapping attempts are skipped
    - an attempt less than `min_spacing` seconds after the previous call
      is skipped, unless forced (the very first call is never throttled)
    - stop() is cooperative: a flag checked before each fetch
    - stop_after(grace) stops at the first check once the grace delay passed
    """

    def __init__(
        self,
        fetch: Callable[[], None],
        interval: float,
        min_spacing: Optional[float] = None,
        name: str = "Poller",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetch = fetch
        self.interval = interval
        self.min_spacing = interval if min_spacing is None else min_spacing
        self.name = name
        self.clock = clock

        self.thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._last_call: Optional[float] = None
        self._stop_at: Optional[float] = None
        self._stopped = False

        self.call_count = 0
        self.skipped_count = 0

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    @property
    def stopped(self) -> bool:
        with self._state_lock:
            return self._stopped

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self.stopped

    def _check_stop(self) -> bool:
        with self._state_lock:
            if not self._stopped and self._stop_at is not None and self.clock() >= self._stop_at:
                self._stopped = True
                self.stop_event.set()
                log.info("[POLL] %s stopped after grace delay", self.name)
            return self._stopped

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------

    def poll(self, force: bool = False) -> bool:
        """
        Run one fetch if the guards allow it

        Args:
            force: Skip the spacing check (initial load). Never skips the in-flight guard.

        Returns:
            True if a fetch was made
        """
        if self._check_stop():
            return False

        if not self._in_flight.acquire(blocking=False):
            self.skipped_count += 1
            log.debug("[POLL] %s fetch already in progress, skipping", self.name)
            return False

        try:
            now = self.clock()
            with self._state_lock:
                too_soon = (
                    not force
                    and self._last_call is not None
                    and now - self._last_call < self.min_spacing
                )
                if not too_soon:
                    self._last_call = now
            if too_soon:
                self.skipped_count += 1
                log.debug("[POLL] %s not enough time since last fetch, skipping", self.name)
                return False

            self.call_count += 1
            try:
                self.fetch()
            except Exception:
                # Owners turn expected failures into notifications; anything else must not kill the loop
                log.exception("[POLL] %s fetch raised", self.name)
            return True
        finally:
            self._in_flight.release()

    def request_refresh(self) -> Optional[threading.Thread]:
        """
        Poll once off the caller's thread (used from timer callbacks)

        Best effort: the spacing and in-flight guards still apply, so a
        request right after another fetch is dropped and the next periodic
        poll picks the change up.
        """
        if self.stopped:
            return None
        thread = threading.Thread(target=self.poll, daemon=True, name=f"{self.name}-refresh")
        thread.start()
        return thread

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Initial fetch, then one fetch per interval on a daemon thread"""
        if self.is_running:
            return
        with self._state_lock:
            self._stopped = False
            self._stop_at = None
        self.stop_event = threading.Event()
        self.thread = threading.Thread(target=self._polling_loop, daemon=True, name=self.name)
        self.thread.start()

    def stop(self):
        with self._state_lock:
            self._stopped = True
        self.stop_event.set()

    def stop_after(self, grace: float):
        with self._state_lock:
            if self._stopped or self._stop_at is not None:
                return
            self._stop_at = self.clock() + grace
        log.debug("[POLL] %s will stop in %.1fs", self.name, grace)

    def join(self, timeout: float = 3.0):
        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)

    def _polling_loop(self):
        stop_event = self.stop_event
        self.poll(force=True)
        while not stop_event.wait(self.interval):
            if self._check_stop():
                break
            self.poll()
