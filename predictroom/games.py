from typing import Dict, List, Optional, Tuple


class GameVariant:
    """
    One game family: endpoints, payload field names, outcomes and theme

    Big/Small and Color Prediction share every view; only this object differs.
    """

    def __init__(
        self,
        key: str,
        name: str,
        desc: str,
        api_prefix: str,
        selection_field: str,
        outcomes: Tuple[str, ...],
        multiplier_field: str,
        winner_field: Optional[str],
        count_fields: Optional[Dict[str, str]] = None,
        counts_field: Optional[str] = None,
        theme: Optional[Dict[str, str]] = None,
    ):
        self.key = key
        self.name = name
        self.desc = desc
        self.api_prefix = api_prefix
        self.selection_field = selection_field
        self.outcomes = outcomes
        self.multiplier_field = multiplier_field
        self.winner_field = winner_field
        # Either one field per outcome (bigPlayers, smallPlayers) or one nested mapping (colorCounts)
        self.count_fields = count_fields or {}
        self.counts_field = counts_field
        self.theme = theme or THEMES["modern_cyan"]

    # endpoints
    @property
    def rooms_path(self) -> str:
        return f"/api/{self.api_prefix}/rooms"

    def room_path(self, room_id: str) -> str:
        return f"/api/{self.api_prefix}/room/{room_id}"

    @property
    def join_path(self) -> str:
        return f"/api/{self.api_prefix}/room/join"

    def outcome_counts(self, data: dict) -> Dict[str, int]:
        if self.counts_field:
            nested = data.get(self.counts_field) or {}
            return {o: int(nested.get(o) or 0) for o in self.outcomes}
        return {o: int(data.get(field) or 0) for o, field in self.count_fields.items()}

    def __repr__(self):
        return f"GameVariant({self.key})"


THEMES = {
    "modern_cyan": {
        "border": "bright_cyan",
        "title": "bright_cyan",
        "accent": "cyan",
        "highlight": "bold bright_green",
    },
    "casino_gold": {
        "border": "yellow",
        "title": "bold yellow",
        "accent": "bright_yellow",
        "highlight": "bold bright_green",
    },
    "neon_magenta": {
        "border": "bright_magenta",
        "title": "bold bright_magenta",
        "accent": "magenta",
        "highlight": "bold bright_cyan",
    },
}

OUTCOME_STYLES = {
    "big": "bold bright_green",
    "small": "bold bright_blue",
    "red": "bold red",
    "green": "bold green",
    "blue": "bold blue",
    "yellow": "bold yellow",
    "none": "dim white",
}

BIG_SMALL = GameVariant(
    key="big_small",
    name="Big Small",
    desc="Pick 1-5 (small) or 6-10 (big)",
    api_prefix="number-game",
    selection_field="numberType",
    outcomes=("big", "small"),
    multiplier_field="winningMultiplier",
    winner_field="winnerType",
    count_fields={"big": "bigPlayers", "small": "smallPlayers"},
    theme=THEMES["casino_gold"],
)

COLOR_PREDICTION = GameVariant(
    key="color_prediction",
    name="Color Prediction",
    desc="Pick the winning color",
    api_prefix="game",
    selection_field="colorSelected",
    outcomes=("red", "green", "blue", "yellow"),
    multiplier_field="benefitFeeMultiplier",
    # Color rooms carry no winner field; the winner comes from the players flagged hasWon
    winner_field=None,
    counts_field="colorCounts",
    theme=THEMES["neon_magenta"],
)

GAMES: Dict[str, GameVariant] = {
    BIG_SMALL.key: BIG_SMALL,
    COLOR_PREDICTION.key: COLOR_PREDICTION,
}


def get_game(key: str) -> GameVariant:
    try:
        return GAMES[key]
    except KeyError:
        raise ValueError(f"Unknown game: {key!r} (expected one of {', '.join(GAMES)})") from None


def list_games() -> List[GameVariant]:
    return list(GAMES.values())
