import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from .errors import AuthenticationError
from .notify import NotificationQueue
from .session import SessionStore

log = logging.getLogger(__name__)

LOGIN = "login"
LOBBY = "lobby"
ROOM = "room"
MENU = "menu"


class Navigator:
    """
    Current view plus its parameters

    Views and timer callbacks call go() from any thread; the launcher's
    main loop picks the change up with take_pending().
    """

    def __init__(self, route: str = LOBBY, **params):
        self._lock = threading.Lock()
        self._route = route
        self._params: Dict[str, Any] = dict(params)
        self._pending = False
        self.history: List[Tuple[str, Dict[str, Any]]] = []

    def go(self, route: str, **params):
        with self._lock:
            self._route = route
            self._params = dict(params)
            self._pending = True
            self.history.append((route, dict(params)))
        log.info("[NAV] -> %s %s", route, params or "")

    @property
    def route(self) -> str:
        with self._lock:
            return self._route

    @property
    def current(self) -> Tuple[str, Dict[str, Any]]:
        with self._lock:
            return self._route, dict(self._params)

    def take_pending(self) -> Optional[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            if not self._pending:
                return None
            self._pending = False
            return self._route, dict(self._params)


def handle_auth_error(error: AuthenticationError, notifications: NotificationQueue, session: SessionStore):
    """Toast, forget the token and let the session's logout handler route to login"""
    notifications.error("Authentication error", error.message)
    session.on_unauthorized()
