"""Deterministic stand-ins for clocks, tickers, HTTP and the room API"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from predictroom.errors import ApiError
from predictroom.games import BIG_SMALL, GameVariant
from predictroom.models import GameRoom, Player, PlayerUser, RoomSnapshot, WalletBalance
from predictroom.session import SessionStore, UserSummary


class ManualClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class ManualTicker:
    """Ticks only when the test says so"""

    def __init__(self, name: str):
        self.name = name
        self.callback = None
        self.running = False

    def start(self, callback):
        self.callback = callback
        self.running = True

    def stop(self):
        self.running = False

    def fire(self):
        if self.running and self.callback:
            self.callback()


class ManualTickers:
    """Ticker factory that remembers every ticker it made"""

    def __init__(self):
        self.tickers: List[ManualTicker] = []

    def __call__(self, name: str) -> ManualTicker:
        ticker = ManualTicker(name)
        self.tickers.append(ticker)
        return ticker

    def running(self) -> List[ManualTicker]:
        return [t for t in self.tickers if t.running]

    def tick(self, times: int = 1):
        for _ in range(times):
            for ticker in list(self.tickers):
                ticker.fire()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self.payload = payload
        self.text = text

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeHttp:
    """Replaces requests.Session: records calls, replays queued responses"""

    def __init__(self, *responses):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers, "timeout": timeout, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class MemorySessionStore(SessionStore):
    """SessionStore that counts saves instead of writing session.json"""

    def __init__(self, token: Optional[str] = "tok-123", user_id: Optional[str] = None):
        super().__init__(path=Path("session.json"))
        self.saves = 0
        self.logouts = 0
        self._token = token
        self._user = UserSummary(user_id, name="Me") if user_id else None
        self.set_logout_handler(self._count_logout)

    def _count_logout(self):
        self.logouts += 1

    def save(self):
        self.saves += 1


def make_room(room_id: str = "R1", status: str = "waiting", current: int = 3, maximum: int = 5,
              entry_fee: float = 100.0, winner: Optional[str] = None) -> GameRoom:
    return GameRoom(
        id=f"id-{room_id}",
        room_id=room_id,
        entry_fee=entry_fee,
        multiplier=1.8,
        max_players=maximum,
        current_players=current,
        outcome_counts={"big": 0, "small": 0},
        status=status,
        created_at="2024-05-01T10:00:00Z",
        winner=winner,
    )


def make_player(pid: str = "p1", prediction: Optional[str] = "big", has_won: bool = False) -> Player:
    return Player(
        id=pid,
        user=PlayerUser(id=f"u-{pid}", name=f"Player {pid}"),
        prediction=prediction,
        stake=100.0,
        has_won=has_won,
        joined_at="2024-05-01T10:01:00Z",
    )


def make_snapshot(players: Optional[List[Player]] = None, **room_kwargs) -> RoomSnapshot:
    return RoomSnapshot(room=make_room(**room_kwargs), players=players or [])


class FakeRoomAPI:
    """
    In-memory RoomAPI

    Each attribute holds what the next call returns; an exception instance
    is raised instead of returned.
    """

    def __init__(self, game: GameVariant = BIG_SMALL):
        self.game = game
        self.rooms: Any = []
        self.wallet: Any = WalletBalance(game=1000.0)
        self.snapshots: List[Any] = []
        self.join_result: Any = {"success": True}
        self.calls: List[tuple] = []

    @staticmethod
    def _value(value):
        if isinstance(value, Exception):
            raise value
        return value

    def list_rooms(self, game):
        self.calls.append(("list_rooms", game.key))
        return self._value(self.rooms)

    def fetch_wallet(self):
        self.calls.append(("fetch_wallet",))
        return self._value(self.wallet)

    def get_room(self, game, room_id):
        self.calls.append(("get_room", room_id))
        if not self.snapshots:
            raise ApiError("no snapshot queued")
        if len(self.snapshots) > 1:
            return self._value(self.snapshots.pop(0))
        return self._value(self.snapshots[0])

    def join_room(self, game, room_id, selection, stake):
        self.calls.append(("join_room", room_id, selection, stake))
        return self._value(self.join_result)

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]
