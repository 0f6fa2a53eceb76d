import logging
from typing import Any, Dict, List, Optional

import requests

from .errors import ApiError, AuthenticationError
from .games import GameVariant
from .models import GameRoom, RoomSnapshot, WalletBalance
from .session import SessionStore, UserSummary

log = logging.getLogger(__name__)

AUTH_FAILED_MESSAGE = "Authentication failed"


class RoomAPI:
    """API client for the prediction-game server"""

    # API Endpoints (shared by every game)
    WALLET_PATH = "/api/users/wallet"
    LOGIN_PATH = "/api/users/login"
    PROFILE_PATH = "/api/users/profile"
    MLM_STATS_PATH = "/api/mlm30/stats"

    def __init__(self, base_url: str, session_store: SessionStore, timeout: float = 10.0,
                 http: Optional[requests.Session] = None):
        """
        Initialize API client

        Args:
            base_url: Server root, e.g. https://api.utpfund.live/
            session_store: Where the bearer token is read from before every call
            timeout: Per-request timeout in seconds
            http: Optional requests.Session (tests pass a stub)
        """
        self.base_url = base_url.rstrip("/")
        self.session_store = session_store
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({
            "accept": "application/json",
            "content-type": "application/json",
        })

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _auth_headers(self) -> Dict[str, str]:
        token = self.session_store.get_token()
        if not token:
            raise AuthenticationError()
        return {"Authorization": f"Bearer {token}"}

    def _request(self, method: str, path: str, auth: bool = True, **kwargs) -> Dict[str, Any]:
        headers = self._auth_headers() if auth else {}
        url = f"{self.base_url}{path}"

        try:
            response = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error("[ROOM API] %s %s failed: %s", method, path, e)
            raise ApiError(f"Network error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        message = data.get("message")
        if response.status_code == 401 or (data.get("success") is False and message == AUTH_FAILED_MESSAGE):
            log.warning("[ROOM API] %s %s rejected the token", method, path)
            raise AuthenticationError(message or "Your session has expired. Please log in again.")

        if response.status_code >= 400:
            log.error("[ROOM API] HTTP %s on %s %s: %s", response.status_code, method, path, response.text[:200])
            raise ApiError(message or f"HTTP {response.status_code}", status=response.status_code,
                           server_message=message)

        if not data.get("success"):
            log.warning("[ROOM API] %s %s returned success=false: %s", method, path, message)
            raise ApiError(message or "Request failed", status=response.status_code, server_message=message)

        return data

    # ------------------------------------------------------------------
    # rooms
    # ------------------------------------------------------------------

    def list_rooms(self, game: GameVariant) -> List[GameRoom]:
        """
        Fetch every room of a game

        Returns:
            Rooms in server order
        """
        data = self._request("GET", game.rooms_path)
        return [GameRoom.from_dict(r, game) for r in data.get("gameRooms") or []]

    def get_room(self, game: GameVariant, room_id: str) -> RoomSnapshot:
        """Fetch a room with its players"""
        data = self._request("GET", game.room_path(room_id))
        return RoomSnapshot.from_response(data, game)

    def join_room(self, game: GameVariant, room_id: str, selection: str, stake: float) -> Dict[str, Any]:
        """
        Join a room with a prediction

        Args:
            game: Game family the room belongs to
            room_id: Public room id (roomId)
            selection: Outcome picked (big/small or a color)
            stake: Amount taken from the game wallet

        Returns:
            Raw success envelope
        """
        body = {
            "roomId": room_id,
            game.selection_field: selection,
            "entryAmount": stake,
        }
        log.info("[BET API] Joining room=%s %s=%s amount=%s", room_id, game.selection_field, selection, stake)
        return self._request("POST", game.join_path, json=body)

    # ------------------------------------------------------------------
    # account
    # ------------------------------------------------------------------

    def fetch_wallet(self) -> WalletBalance:
        data = self._request("GET", self.WALLET_PATH)
        return WalletBalance.from_dict(data.get("wallet") or {})

    def login(self, email: str, password: str) -> UserSummary:
        """
        Exchange credentials for a bearer token and store it in the session

        Returns:
            The logged-in user
        """
        data = self._request("POST", self.LOGIN_PATH, auth=False, json={"email": email, "password": password})
        token = data.get("token")
        if not token:
            raise ApiError("Login response carried no token")
        user = UserSummary.from_dict(data.get("user") or {})
        self.session_store.login(token, user)
        log.info("[ROOM API] Logged in as %s", user.email or user.id)
        return user

    def fetch_profile(self) -> Dict[str, Any]:
        return self._request("GET", self.PROFILE_PATH).get("user") or {}

    def fetch_mlm_stats(self) -> Dict[str, Any]:
        data = self._request("GET", self.MLM_STATS_PATH)
        return {"user": data.get("user") or {}, "statistics": data.get("statistics") or {}}
