import logging
import math
from typing import Optional, Union

from .errors import BetValidationError
from .games import BIG_SMALL, GameVariant
from .models import GameRoom, WalletBalance

log = logging.getLogger(__name__)

SMALL_NUMBERS = range(1, 6)
BIG_NUMBERS = range(6, 11)


def category_for_number(number: int) -> str:
    """Big/Small: 1-5 is small, 6-10 is big"""
    if number in SMALL_NUMBERS:
        return "small"
    if number in BIG_NUMBERS:
        return "big"
    raise BetValidationError("Invalid number", "Pick a number between 1 and 10.")


def parse_stake(stake: Union[str, float, int, None]) -> float:
    if stake is None or (isinstance(stake, str) and not stake.strip()):
        raise BetValidationError("Incomplete selection", "Please select a prediction and enter a bet amount.")
    try:
        amount = float(stake)
    except (TypeError, ValueError):
        raise BetValidationError("Invalid bet amount", "Please enter a valid bet amount greater than 0.") from None
    if not math.isfinite(amount) or amount <= 0:
        raise BetValidationError("Invalid bet amount", "Please enter a valid bet amount greater than 0.")
    return amount


class BetSlip:
    """
    What the user picked in the prediction dialog

    For Big/Small a number can be picked instead of the category; the
    category is derived from it. validate() runs before any network call.
    """

    def __init__(self, game: GameVariant, room: GameRoom, selection: Optional[str] = None,
                 number: Optional[int] = None, stake: Union[str, float, int, None] = None):
        self.game = game
        self.room = room
        self.number = number
        self.selection = selection
        # Dialog opens with the room's entry fee filled in
        self.stake = stake if stake is not None else room.entry_fee

    def pick_number(self, number: int):
        self.number = number
        self.selection = category_for_number(number)

    def pick(self, selection: str):
        self.selection = selection
        self.number = None

    def validate_choice(self) -> float:
        """Selection and stake only; the room view has no wallet to check against"""
        if self.game is BIG_SMALL and self.number is not None:
            self.selection = category_for_number(self.number)

        if not self.selection:
            raise BetValidationError("Incomplete selection", "Please select a prediction and enter a bet amount.")
        if self.selection not in self.game.outcomes:
            raise BetValidationError(
                "Invalid selection",
                f"{self.selection!r} is not one of {', '.join(self.game.outcomes)}.",
            )
        return parse_stake(self.stake)

    def validate(self, wallet: Optional[WalletBalance]) -> float:
        """
        Check the slip against the game and the known wallet balance

        Returns:
            Stake as a float

        Raises:
            BetValidationError: incomplete selection, bad stake or insufficient funds
        """
        amount = self.validate_choice()

        balance = wallet.game if wallet else 0.0
        if balance < amount:
            log.info("[BET] Rejected locally: stake %.2f > game balance %.2f", amount, balance)
            raise BetValidationError("Insufficient funds", "You do not have enough balance in your game wallet.")

        return amount

    def describe(self) -> str:
        if self.number is not None:
            return f"{self.selection} (number {self.number})"
        return str(self.selection)
