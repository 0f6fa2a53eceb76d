from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .games import GameVariant

WAITING = "waiting"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

NO_WINNER = "none"


def _float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class GameRoom:
    id: str
    room_id: str
    entry_fee: float
    multiplier: float
    max_players: int
    current_players: int
    outcome_counts: Dict[str, int]
    status: str
    created_at: str
    winner: Optional[str] = None
    winner_number: Optional[int] = None
    winning_amount: Optional[float] = None

    @property
    def is_full(self) -> bool:
        return self.current_players >= self.max_players

    @property
    def is_open(self) -> bool:
        return self.status == WAITING and not self.is_full

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED

    @staticmethod
    def from_dict(data: dict, game: GameVariant) -> "GameRoom":
        winner = data.get(game.winner_field) if game.winner_field else None
        winning_amount = data.get("winningAmount")
        winner_number = data.get("winnerNumber")
        return GameRoom(
            id=str(data.get("id") or data.get("_id") or data.get("roomId") or ""),
            room_id=str(data.get("roomId") or data.get("id") or ""),
            entry_fee=_float(data.get("entryFee")),
            multiplier=_float(data.get(game.multiplier_field)),
            max_players=_int(data.get("maxPlayers")),
            current_players=_int(data.get("currentPlayers")),
            outcome_counts=game.outcome_counts(data),
            status=str(data.get("status") or WAITING),
            created_at=str(data.get("createdAt") or ""),
            winner=winner or None,
            winner_number=_int(winner_number) if winner_number is not None else None,
            winning_amount=_float(winning_amount) if winning_amount is not None else None,
        )


@dataclass
class PlayerUser:
    id: str
    name: str = ""
    email: str = ""


@dataclass
class Player:
    id: str
    user: PlayerUser
    prediction: Optional[str]
    stake: float
    has_won: bool
    joined_at: str
    selected_number: Optional[int] = None

    @staticmethod
    def from_dict(data: dict, game: GameVariant) -> "Player":
        user = data.get("user") or {}
        selected = data.get("selectedNumber")
        return Player(
            id=str(data.get("id") or data.get("_id") or ""),
            user=PlayerUser(
                id=str(user.get("id") or user.get("_id") or ""),
                name=user.get("name", ""),
                email=user.get("email", ""),
            ),
            prediction=data.get(game.selection_field),
            stake=_float(data.get("entryAmount")),
            has_won=bool(data.get("hasWon")),
            joined_at=str(data.get("joinedAt") or ""),
            selected_number=_int(selected) if selected is not None else None,
        )


@dataclass
class RoomSnapshot:
    """One poll result: the room plus its players"""
    room: GameRoom
    players: List[Player] = field(default_factory=list)

    @staticmethod
    def from_response(data: dict, game: GameVariant) -> "RoomSnapshot":
        return RoomSnapshot(
            room=GameRoom.from_dict(data.get("gameRoom") or {}, game),
            players=[Player.from_dict(p, game) for p in data.get("players") or []],
        )


@dataclass
class WalletBalance:
    normal: float = 0.0
    benefit: float = 0.0
    game: float = 0.0

    @staticmethod
    def from_dict(data: dict) -> "WalletBalance":
        return WalletBalance(
            normal=_float(data.get("normal")),
            benefit=_float(data.get("benefit")),
            game=_float(data.get("game")),
        )
