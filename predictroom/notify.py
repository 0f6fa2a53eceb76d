import logging
import threading
from collections import deque
from datetime import datetime
from typing import List, Optional

from rich.logging import RichHandler

log = logging.getLogger(__name__)

MAX_TOASTS = 200
MAX_VISIBLE_LOGS = 10

LEVEL_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
}


class Notification:
    """One toast: a title, an optional description and a severity level"""

    def __init__(self, title: str, description: str = "", level: str = "info"):
        self.title = title
        self.description = description
        self.level = level
        self.time = datetime.now().strftime("%H:%M:%S")

    @property
    def style(self) -> str:
        return LEVEL_STYLES.get(self.level, "white")

    def __repr__(self):
        return f"Notification({self.level}: {self.title!r})"


class NotificationQueue:
    """
    Toast queue that drops the oldest entry when full

    Producers (poll threads, timer ticks) never block on the UI.
    """

    def __init__(self, maxsize: int = MAX_TOASTS):
        self.maxsize = maxsize
        self.queue = deque(maxlen=maxsize)
        self.lock = threading.Lock()
        self.dropped_count = 0

    def put(self, notification: Notification):
        with self.lock:
            if len(self.queue) >= self.maxsize:
                self.queue.popleft()
                self.dropped_count += 1
                if self.dropped_count % 100 == 0:
                    log.warning("[NOTIFY] Dropped %d notifications (queue full)", self.dropped_count)
            self.queue.append(notification)

    def info(self, title: str, description: str = ""):
        self.put(Notification(title, description, "info"))

    def success(self, title: str, description: str = ""):
        self.put(Notification(title, description, "success"))

    def warning(self, title: str, description: str = ""):
        self.put(Notification(title, description, "warning"))

    def error(self, title: str, description: str = ""):
        self.put(Notification(title, description, "error"))

    def drain(self) -> List[Notification]:
        with self.lock:
            items = list(self.queue)
            self.queue.clear()
        return items

    def empty(self) -> bool:
        with self.lock:
            return len(self.queue) == 0

    def qsize(self) -> int:
        with self.lock:
            return len(self.queue)


class NotificationLog:
    """Last few toasts kept for the footer panel"""

    def __init__(self, maxlen: int = MAX_VISIBLE_LOGS):
        self.entries = deque(maxlen=maxlen)

    def absorb(self, queue: NotificationQueue):
        for notification in queue.drain():
            self.entries.append(notification)

    def snapshot(self) -> List[Notification]:
        return list(self.entries)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Route log records to rich (terminal) or to a file

    The launcher starts on the terminal (config loading, --save-config) and
    switches to a log file once the menus and the live dashboard own the screen.
    Calling it again replaces the previous handlers.
    """
    handlers: List[logging.Handler]
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers = [handler]
    else:
        handlers = [RichHandler(rich_tracebacks=True, show_path=False, markup=False)]

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )
