import logging
import time
from typing import Callable, Optional

from .api import RoomAPI
from .bet import BetSlip
from .config import ClientConfig
from .errors import ApiError, AuthenticationError, BetValidationError
from .games import BIG_SMALL, GameVariant
from .lobby import JOIN_FAILED
from .models import NO_WINNER, RoomSnapshot
from .navigation import LOBBY, Navigator, handle_auth_error
from .notify import NotificationQueue
from .poller import Poller
from .reconciler import Phase, PhaseDurations, PhaseKind, RoomReconciler, user_result
from .session import SessionStore
from .timers import TickerFactory, TimerSet, default_ticker_factory

log = logging.getLogger(__name__)


class RoomView:
    """
    One room: poll, reconcile, run the phase timers, go back to the lobby

    Polling stops for good once the room is resolved (after a short grace
    delay); close() clears every timer and the poll loop.
    """

    def __init__(
        self,
        api: RoomAPI,
        game: GameVariant,
        room_id: str,
        session: SessionStore,
        navigator: Navigator,
        notifications: NotificationQueue,
        config: ClientConfig,
        ticker_factory: TickerFactory = default_ticker_factory,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.game = game
        self.room_id = room_id
        self.session = session
        self.navigator = navigator
        self.notifications = notifications
        self.config = config

        self.snapshot: Optional[RoomSnapshot] = None
        self.is_loading = True
        self.error: Optional[str] = None
        self.previous_player_count = 0
        self.closed = False

        self.timers = TimerSet(ticker_factory)
        self.reconciler = RoomReconciler(
            self.timers,
            PhaseDurations.from_config(config),
            on_refresh=self._refresh_soon,
            on_redirect=self._back_to_lobby,
            on_transition=self._on_transition,
        )
        self.poller = Poller(
            self.refresh,
            interval=config.room_poll_interval,
            min_spacing=config.room_min_spacing,
            name=f"RoomPoller-{room_id}",
            clock=clock,
        )

    @property
    def phase(self) -> Optional[Phase]:
        return self.reconciler.phase

    @property
    def user_id(self) -> Optional[str]:
        user = self.session.user
        return user.id if user and user.id else None

    @property
    def has_joined(self) -> bool:
        if self.snapshot is None:
            return False
        return user_result(self.snapshot.players, self.user_id) is not None

    @property
    def user_won(self) -> Optional[bool]:
        """Own result once the round is resolved; None before that or without a bet here"""
        phase = self.phase
        settled = self.reconciler.snapshot
        if phase is None or not phase.is_terminal or settled is None:
            return None
        return user_result(settled.players, self.user_id)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self):
        self.poller.start()

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.poller.stop()
        self.reconciler.close()
        log.debug("[ROOM] %s closed", self.room_id)

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------

    def refresh(self):
        if self.closed:
            return
        try:
            snapshot = self.api.get_room(self.game, self.room_id)
        except AuthenticationError as e:
            self.close()
            handle_auth_error(e, self.notifications, self.session)
            return
        except ApiError as e:
            # Stale but available: the previous snapshot stays on screen
            self.error = e.server_message or "Could not retrieve game room information."
            self.notifications.error("Error retrieving room data", self.error)
            return
        finally:
            self.is_loading = False

        self.error = None
        room = snapshot.room
        if self.previous_player_count > 0 and room.current_players > self.previous_player_count:
            joined = room.current_players - self.previous_player_count
            self.notifications.info("New player joined", f"{joined} player(s) joined room {room.room_id}.")
        self.previous_player_count = room.current_players
        self.snapshot = snapshot

        phase = self.reconciler.reconcile(snapshot)
        if phase.is_terminal:
            self.poller.stop_after(self.config.completion_grace)

    # ------------------------------------------------------------------
    # betting
    # ------------------------------------------------------------------

    def join(self, selection: str, stake=None) -> bool:
        """
        Join the watched room without going back to the lobby

        Args:
            selection: An outcome of the game; for Big/Small a number 1-10 also works
            stake: Bet amount, defaults to the room's entry fee

        Returns:
            True when the server accepted the bet
        """
        room = self.snapshot.room if self.snapshot else None
        if room is None or not room.is_open:
            self.notifications.warning("Room unavailable", f"Room {self.room_id} is full or already playing.")
            return False
        if self.has_joined:
            self.notifications.warning("Already joined", f"You already have a bet in room {room.room_id}.")
            return False

        slip = BetSlip(self.game, room, stake=stake)
        try:
            if self.game is BIG_SMALL and selection.isdigit():
                slip.pick_number(int(selection))
            else:
                slip.pick(selection)
            amount = slip.validate_choice()
        except BetValidationError as e:
            self.notifications.error(e.title, e.message)
            return False

        try:
            self.api.join_room(self.game, room.room_id, slip.selection, amount)
        except AuthenticationError as e:
            self.close()
            handle_auth_error(e, self.notifications, self.session)
            return False
        except ApiError as e:
            self.notifications.error("Failed to join room", e.server_message or JOIN_FAILED)
            return False

        self.notifications.success("Joined Game Room", f"You have successfully joined with {slip.describe()}.")
        log.info("[BET] Joined room %s from the room view with %s, stake %.2f", room.room_id, slip.selection, amount)
        self._refresh_soon()
        return True

    def _refresh_soon(self):
        if not self.closed:
            self.poller.request_refresh()

    # ------------------------------------------------------------------
    # phase callbacks
    # ------------------------------------------------------------------

    def _on_transition(self, previous: Optional[Phase], current: Phase):
        if current.kind == PhaseKind.STARTING:
            self.notifications.info("Room is full", f"Round starts in {current.countdown}s.")
        elif current.kind == PhaseKind.AWAITING_RESULT:
            self.notifications.info("Round in play", "Results are being computed...")
        elif current.kind == PhaseKind.RESOLVED:
            if current.outcome == NO_WINNER:
                self.notifications.warning("Round finished", "No winner this round.")
            else:
                self.notifications.success("Round finished", f"Winner: {current.outcome.upper()}")

    def _back_to_lobby(self):
        self.close()
        self.navigator.go(LOBBY, game=self.game.key)
