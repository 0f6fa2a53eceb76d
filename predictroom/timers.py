import logging
import threading
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)

TICK_SECONDS = 1.0

# Timer names, one per phase that owns a countdown
WAITING_TIMER = "waiting"
START_TIMER = "start"
REVEAL_TIMER = "reveal"
REDIRECT_TIMER = "redirect"


class ThreadTicker:
    """
    Calls a callback every `interval` seconds on a daemon thread

    stop() never joins: a callback may be blocked on a lock held by the
    caller of stop(). A callback racing with stop() is filtered out by the
    timer's own active check.
    """

    def __init__(self, interval: float = TICK_SECONDS, name: str = "Ticker"):
        self.interval = interval
        self.name = name
        self.thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self.thread is not None and not self.stop_event.is_set()

    def start(self, callback: Callable[[], None]):
        self.stop()
        # Fresh event per run so an old thread can never be revived
        self.stop_event = threading.Event()
        stop_event = self.stop_event
        self.thread = threading.Thread(
            target=self._loop,
            args=(callback, stop_event),
            daemon=True,
            name=self.name,
        )
        self.thread.start()

    def stop(self):
        self.stop_event.set()
        self.thread = None

    def _loop(self, callback: Callable[[], None], stop_event: threading.Event):
        while not stop_event.wait(self.interval):
            try:
                callback()
            except Exception:
                log.exception("[TIMER] %s tick failed", self.name)


TickerFactory = Callable[[str], ThreadTicker]


def default_ticker_factory(name: str) -> ThreadTicker:
    return ThreadTicker(TICK_SECONDS, name=f"Timer-{name}")


class CountdownTimer:
    """
    Integer countdown on a 1-second tick

    Advisory only: expiry never decides anything about the round, it only
    tells the owner to refresh or navigate.
    """

    def __init__(
        self,
        name: str,
        seconds: int,
        on_expire: Optional[Callable[[], None]] = None,
        rearm: bool = False,
        ticker_factory: TickerFactory = default_ticker_factory,
    ):
        self.name = name
        self.seconds = int(seconds)
        self.on_expire = on_expire
        self.rearm = rearm
        self._ticker = ticker_factory(name)
        self._lock = threading.Lock()
        self._value = self.seconds
        self._active = False

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def start(self):
        with self._lock:
            self._value = self.seconds
            self._active = True
        self._ticker.start(self.tick)

    def stop(self):
        with self._lock:
            self._active = False
        self._ticker.stop()

    def tick(self):
        expired = False
        with self._lock:
            if not self._active:
                return
            if self._value <= 1:
                if self.rearm:
                    self._value = self.seconds
                else:
                    self._value = 0
                    self._active = False
                    expired = True
            else:
                self._value -= 1

        if expired:
            self._ticker.stop()
            log.debug("[TIMER] %s expired", self.name)
            if self.on_expire:
                self.on_expire()

    def __repr__(self):
        return f"CountdownTimer({self.name}={self.value}, active={self.active})"


class TimerSet:
    """
    Named countdowns owned by one view

    Starting a timer under a name that is already in use stops the old one,
    and clear() stops everything on teardown.
    """

    def __init__(self, ticker_factory: TickerFactory = default_ticker_factory):
        self.ticker_factory = ticker_factory
        self._timers: Dict[str, CountdownTimer] = {}
        self._lock = threading.Lock()

    def start(self, name: str, seconds: int, on_expire: Optional[Callable[[], None]] = None,
              rearm: bool = False) -> CountdownTimer:
        timer = CountdownTimer(name, seconds, on_expire=on_expire, rearm=rearm,
                               ticker_factory=self.ticker_factory)
        with self._lock:
            previous = self._timers.pop(name, None)
            self._timers[name] = timer
        if previous:
            previous.stop()
        timer.start()
        return timer

    def stop(self, name: str):
        with self._lock:
            timer = self._timers.pop(name, None)
        if timer:
            timer.stop()

    def stop_all_except(self, keep: Optional[str]):
        for name in self.names():
            if name != keep:
                self.stop(name)

    def clear(self):
        self.stop_all_except(None)

    def get(self, name: str) -> Optional[CountdownTimer]:
        with self._lock:
            return self._timers.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._timers)

    def active_names(self) -> List[str]:
        with self._lock:
            timers = list(self._timers.values())
        return [t.name for t in timers if t.active]

    def value(self, name: str) -> Optional[int]:
        timer = self.get(name)
        return timer.value if timer else None
