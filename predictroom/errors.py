from typing import Optional


class PredictRoomError(Exception):
    """Base error for the client"""


class AuthenticationError(PredictRoomError):
    """Missing, expired or rejected bearer token"""

    def __init__(self, message: str = "You are not logged in. Please log in to continue."):
        super().__init__(message)
        self.message = message


class ApiError(PredictRoomError):
    """
    Server answered with an error envelope, an HTTP error, or not at all

    server_message is the envelope's own `message`, when there was one.
    """

    def __init__(self, message: str, status: Optional[int] = None, server_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.server_message = server_message


class BetValidationError(PredictRoomError):
    """Bet slip rejected locally; never reaches the network"""

    def __init__(self, title: str, message: str):
        super().__init__(f"{title}: {message}")
        self.title = title
        self.message = message
