"""
Room state reconciliation

Maps each fetched room snapshot onto a local phase and owns the countdown
timers of that phase. The server status is authoritative; local timers only
decide when to refresh and when to leave the room view.

Phase flow for one room:

    WAITING --(room full)--> STARTING --(countdown ends)--> AWAITING_RESULT
       |                        |                                |
       +------------------------+----(server: completed)---------+--> RESOLVED
                                                                         |
                                                    (redirect countdown) v
                                                                    REDIRECTING
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .models import COMPLETED, IN_PROGRESS, NO_WINNER, WAITING, GameRoom, Player, RoomSnapshot
from .timers import REDIRECT_TIMER, REVEAL_TIMER, START_TIMER, WAITING_TIMER, TimerSet

log = logging.getLogger(__name__)


class PhaseKind(enum.Enum):
    WAITING = "waiting"
    STARTING = "starting"
    AWAITING_RESULT = "awaiting_result"
    RESOLVED = "resolved"
    REDIRECTING = "redirecting"


TERMINAL_KINDS = (PhaseKind.RESOLVED, PhaseKind.REDIRECTING)


@dataclass(frozen=True)
class Phase:
    kind: PhaseKind
    countdown: Optional[int] = None
    outcome: Optional[str] = None

    @classmethod
    def waiting(cls, seconds_left: int) -> "Phase":
        return cls(PhaseKind.WAITING, countdown=seconds_left)

    @classmethod
    def starting(cls, countdown: int) -> "Phase":
        return cls(PhaseKind.STARTING, countdown=countdown)

    @classmethod
    def awaiting_result(cls, countdown: int) -> "Phase":
        return cls(PhaseKind.AWAITING_RESULT, countdown=countdown)

    @classmethod
    def resolved(cls, outcome: str, countdown: int) -> "Phase":
        return cls(PhaseKind.RESOLVED, countdown=countdown, outcome=outcome or NO_WINNER)

    @classmethod
    def redirecting(cls, outcome: str) -> "Phase":
        return cls(PhaseKind.REDIRECTING, countdown=0, outcome=outcome or NO_WINNER)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


class PhaseDurations:
    """Initial values of the phase countdowns, in seconds"""

    def __init__(self, waiting: int = 30, start: int = 10, reveal: int = 5, redirect: int = 10):
        self.waiting = waiting
        self.start = start
        self.reveal = reveal
        self.redirect = redirect

    @staticmethod
    def from_config(config) -> "PhaseDurations":
        return PhaseDurations(
            waiting=config.waiting_timer,
            start=config.start_countdown,
            reveal=config.reveal_countdown,
            redirect=config.redirect_countdown,
        )


# Which timer each phase owns
PHASE_TIMERS = {
    PhaseKind.WAITING: WAITING_TIMER,
    PhaseKind.STARTING: START_TIMER,
    PhaseKind.AWAITING_RESULT: REVEAL_TIMER,
    PhaseKind.RESOLVED: REDIRECT_TIMER,
    PhaseKind.REDIRECTING: None,
}


# ============================================================================
# PURE HELPERS
# ============================================================================

def resolve_winner(room: GameRoom, players: Iterable[Player]) -> str:
    """
    Winning outcome of a completed room

    Room winner field first, then the first player flagged as winner,
    otherwise NO_WINNER. Never returns None.
    """
    if room.winner:
        return room.winner
    for player in players:
        if player.has_won and player.prediction:
            return player.prediction
    return NO_WINNER


def user_result(players: Iterable[Player], user_id: Optional[str]) -> Optional[bool]:
    """Whether the given user won; None when they have no bet in the room"""
    if not user_id:
        return None
    mine = [p for p in players if p.user.id == user_id]
    if not mine:
        return None
    return any(p.has_won for p in mine)


def derive_phase(room: GameRoom, players: Iterable[Player], durations: Optional[PhaseDurations] = None) -> Phase:
    """Phase a fresh view would show for this snapshot"""
    durations = durations or PhaseDurations()
    if room.status == COMPLETED:
        return Phase.resolved(resolve_winner(room, players), durations.redirect)
    if room.status == IN_PROGRESS:
        return Phase.awaiting_result(durations.reveal)
    if room.status != WAITING:
        log.warning("[RECONCILE] Unknown room status %r, treating as waiting", room.status)
    if room.is_full:
        return Phase.starting(durations.start)
    return Phase.waiting(durations.waiting)


def merge_rooms(existing: List[GameRoom], incoming: List[GameRoom], initial: bool = False) -> List[GameRoom]:
    """
    Merge a fresh room list into the cached one without reordering it

    Known rooms keep their position and take the incoming values; rooms the
    server no longer lists stay as they were; unseen rooms go at the end.
    """
    if initial or not existing:
        return list(incoming)

    by_id = {room.room_id: room for room in incoming}
    merged = [by_id.get(room.room_id, room) for room in existing]
    known = {room.room_id for room in existing}
    merged.extend(room for room in incoming if room.room_id not in known)
    return merged


# ============================================================================
# RECONCILER
# ============================================================================

class RoomReconciler:
    """
    Keeps one room's phase and its single active timer in step with the server

    reconcile() is idempotent: the same snapshot twice gives the same phase
    and leaves the running timer alone. Timers are only replaced on a phase
    kind change.
    """

    def __init__(
        self,
        timers: Optional[TimerSet] = None,
        durations: Optional[PhaseDurations] = None,
        on_refresh: Optional[Callable[[], None]] = None,
        on_redirect: Optional[Callable[[], None]] = None,
        on_transition: Optional[Callable[[Optional[Phase], Phase], None]] = None,
    ):
        self.timers = timers or TimerSet()
        self.durations = durations or PhaseDurations()
        self.on_refresh = on_refresh
        self.on_redirect = on_redirect
        self.on_transition = on_transition

        self._lock = threading.RLock()
        self._kind: Optional[PhaseKind] = None
        self._outcome: Optional[str] = None
        self.snapshot: Optional[RoomSnapshot] = None

    # ------------------------------------------------------------------
    # reading
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Optional[Phase]:
        """Current phase with the live countdown of its timer"""
        with self._lock:
            kind, outcome = self._kind, self._outcome
        if kind is None:
            return None
        timer_name = PHASE_TIMERS[kind]
        countdown = self.timers.value(timer_name) if timer_name else 0
        return Phase(kind, countdown=countdown, outcome=outcome)

    @property
    def kind(self) -> Optional[PhaseKind]:
        with self._lock:
            return self._kind

    # ------------------------------------------------------------------
    # reconciling
    # ------------------------------------------------------------------

    def reconcile(self, snapshot: RoomSnapshot) -> Phase:
        with self._lock:
            previous = self.phase
            target = derive_phase(snapshot.room, snapshot.players, self.durations)

            if self._kind in TERMINAL_KINDS:
                if target.kind == PhaseKind.RESOLVED:
                    self.snapshot = snapshot
                    if target.outcome != self._outcome:
                        log.info("[RECONCILE] Winner corrected by server: %s -> %s", self._outcome, target.outcome)
                        self._outcome = target.outcome
                else:
                    log.debug("[RECONCILE] Ignoring %s snapshot for a resolved room", snapshot.room.status)
                return self.phase

            self.snapshot = snapshot

            if self._kind == PhaseKind.AWAITING_RESULT and target.kind == PhaseKind.STARTING:
                # Local countdown already ran out; the server has not caught up yet
                return self.phase

            if target.kind != self._kind:
                self._enter(target.kind, target.outcome)

            current = self.phase

        if previous is None or previous.kind != current.kind:
            self._notify_transition(previous, current)
        return current

    def _enter(self, kind: PhaseKind, outcome: Optional[str] = None):
        """Switch phase: stop the old phase's timer before starting the new one"""
        old_kind = self._kind
        self._kind = kind
        self._outcome = outcome if kind in TERMINAL_KINDS else None

        self.timers.stop_all_except(None)
        log.info("[RECONCILE] Phase %s -> %s", old_kind.value if old_kind else "-", kind.value)

        if kind == PhaseKind.WAITING:
            self.timers.start(WAITING_TIMER, self.durations.waiting, rearm=True)
        elif kind == PhaseKind.STARTING:
            self.timers.start(START_TIMER, self.durations.start, on_expire=self._on_start_expired)
        elif kind == PhaseKind.AWAITING_RESULT:
            self.timers.start(REVEAL_TIMER, self.durations.reveal, on_expire=self._on_reveal_expired)
        elif kind == PhaseKind.RESOLVED:
            self.timers.start(REDIRECT_TIMER, self.durations.redirect, on_expire=self._on_redirect_expired)

    def _notify_transition(self, previous: Optional[Phase], current: Phase):
        if self.on_transition:
            self.on_transition(previous, current)

    # ------------------------------------------------------------------
    # timer expiry
    # ------------------------------------------------------------------

    def _on_start_expired(self):
        with self._lock:
            if self._kind != PhaseKind.STARTING:
                return
            previous = self.phase
            self._enter(PhaseKind.AWAITING_RESULT)
            current = self.phase
        self._notify_transition(previous, current)
        if self.on_refresh:
            self.on_refresh()

    def _on_reveal_expired(self):
        with self._lock:
            if self._kind != PhaseKind.AWAITING_RESULT:
                return
        log.info("[RECONCILE] Result still pending, asking for a refresh")
        if self.on_refresh:
            self.on_refresh()

    def _on_redirect_expired(self):
        with self._lock:
            if self._kind != PhaseKind.RESOLVED:
                return
            previous = self.phase
            self._kind = PhaseKind.REDIRECTING
            self.timers.clear()
            current = self.phase
        self._notify_transition(previous, current)
        if self.on_redirect:
            self.on_redirect()

    def close(self):
        """Tear down: no timer survives the view"""
        self.timers.clear()
