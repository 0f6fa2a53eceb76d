import logging
import threading
import time
from typing import Callable, List, Optional

from .api import RoomAPI
from .bet import BetSlip
from .config import ClientConfig
from .errors import ApiError, AuthenticationError, BetValidationError
from .games import GameVariant
from .models import GameRoom, WalletBalance
from .navigation import ROOM, Navigator, handle_auth_error
from .notify import NotificationQueue
from .poller import Poller
from .reconciler import merge_rooms
from .session import SessionStore

log = logging.getLogger(__name__)

JOIN_FAILED = "An error occurred while joining the game room."


class LobbyView:
    """
    Room list + wallet for one game, refreshed every lobby poll period

    Both snapshots are kept when a refresh fails, so the list never blanks.
    """

    def __init__(
        self,
        api: RoomAPI,
        game: GameVariant,
        session: SessionStore,
        navigator: Navigator,
        notifications: NotificationQueue,
        config: ClientConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.game = game
        self.session = session
        self.navigator = navigator
        self.notifications = notifications
        self.config = config

        self._lock = threading.Lock()
        self.rooms: List[GameRoom] = []
        self.wallet: Optional[WalletBalance] = None
        self.is_loading = True
        self.is_polling = False
        self._initial = True

        self.poller = Poller(
            self.refresh,
            interval=config.lobby_poll_interval,
            name=f"LobbyPoller-{game.key}",
            clock=clock,
        )

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------

    def start(self):
        self.poller.start()

    def stop(self):
        self.poller.stop()

    def refresh(self):
        """Fetch rooms and wallet; each failure is toasted on its own"""
        initial = self._initial
        self.is_polling = not initial
        try:
            self._refresh_rooms(initial)
            self._refresh_wallet()
        except AuthenticationError as e:
            self.poller.stop()
            handle_auth_error(e, self.notifications, self.session)
        finally:
            self._initial = False
            self.is_loading = False
            self.is_polling = False

    def manual_refresh(self) -> bool:
        """User asked for fresh data; the poll spacing still applies"""
        if self.poller.poll():
            return True
        self.notifications.warning(
            "Refreshing too often",
            f"Rooms refresh every {self.poller.min_spacing:g}s. Please wait before refreshing again.",
        )
        return False

    def _refresh_rooms(self, initial: bool):
        try:
            incoming = self.api.list_rooms(self.game)
        except ApiError as e:
            self.notifications.error("Error fetching game rooms", e.server_message or "Could not retrieve game rooms information.")
            return
        with self._lock:
            self.rooms = merge_rooms(self.rooms, incoming, initial=initial)
        log.debug("[LOBBY] %d rooms", len(incoming))

    def _refresh_wallet(self):
        try:
            wallet = self.api.fetch_wallet()
        except ApiError as e:
            self.notifications.error("Error fetching wallet", e.server_message or "Could not retrieve wallet information.")
            return
        with self._lock:
            self.wallet = wallet

    def snapshot(self) -> List[GameRoom]:
        with self._lock:
            return list(self.rooms)

    def find_room(self, room_id: str) -> Optional[GameRoom]:
        for room in self.snapshot():
            if room.room_id == room_id:
                return room
        return None

    # ------------------------------------------------------------------
    # betting
    # ------------------------------------------------------------------

    def open_bet(self, room: GameRoom) -> Optional[BetSlip]:
        """Prediction dialog for an open room; full or busy rooms cannot be joined"""
        if not room.is_open:
            self.notifications.warning("Room unavailable", f"Room {room.room_id} is full or already playing.")
            return None
        return BetSlip(self.game, room)

    def submit(self, slip: BetSlip) -> bool:
        """
        Validate locally, then join

        Returns:
            True when the server accepted the bet (the navigator then points at the room)
        """
        try:
            stake = slip.validate(self.wallet)
        except BetValidationError as e:
            self.notifications.error(e.title, e.message)
            return False

        room_id = slip.room.room_id
        self.notifications.info("Joining game room...", f"Joining room {room_id} with {slip.describe()} ({stake:.2f})")
        try:
            self.api.join_room(self.game, room_id, slip.selection, stake)
        except AuthenticationError as e:
            handle_auth_error(e, self.notifications, self.session)
            return False
        except ApiError as e:
            self.notifications.error("Failed to join room", e.server_message or JOIN_FAILED)
            return False

        # Optimistic: the next wallet poll brings the authoritative value
        with self._lock:
            if self.wallet:
                self.wallet.game = max(0.0, self.wallet.game - stake)

        self.notifications.success("Successfully joined!", f"You have joined room {room_id} with a {slip.selection} prediction.")
        log.info("[BET] Joined room %s with %s, stake %.2f", room_id, slip.selection, stake)
        self.stop()
        self.navigator.go(ROOM, game=self.game.key, room_id=room_id)
        return True
