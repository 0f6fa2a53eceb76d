import json
import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from .config import CONFIG_DIR, SESSION_FILE_NAME

log = logging.getLogger(__name__)


class UserSummary:
    """Logged-in user as returned by the login endpoint"""

    def __init__(self, id: str, name: str = "", email: str = "", referral_code: str = "", level: int = 0):
        self.id = str(id)
        self.name = name
        self.email = email
        self.referral_code = referral_code
        self.level = level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "referralCode": self.referral_code,
            "level": self.level,
        }

    @staticmethod
    def from_dict(data: dict) -> "UserSummary":
        return UserSummary(
            id=data.get("id") or data.get("_id") or "",
            name=data.get("name", ""),
            email=data.get("email", ""),
            referral_code=data.get("referralCode", ""),
            level=data.get("level") or 0,
        )


class SessionStore:
    """
    Bearer token + user summary, persisted to session.json

    Views only read from it. on_unauthorized() is the single mutation path
    used by the API layer when the server rejects the token.
    """

    def __init__(self, path: Optional[Path] = None, on_logout: Optional[Callable[[], None]] = None):
        self.path = path if path is not None else CONFIG_DIR / SESSION_FILE_NAME
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._user: Optional[UserSummary] = None
        self._on_logout = on_logout

    # token
    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    @property
    def user(self) -> Optional[UserSummary]:
        with self._lock:
            return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self.get_token())

    def set_logout_handler(self, handler: Optional[Callable[[], None]]):
        self._on_logout = handler

    def login(self, token: str, user: Optional[UserSummary] = None):
        with self._lock:
            self._token = token
            self._user = user
        self.save()

    def logout(self):
        with self._lock:
            self._token = None
            self._user = None
        self.save()

    def on_unauthorized(self):
        """Token missing or rejected: forget it and hand control to the login view"""
        log.warning("[SESSION] Unauthorized, clearing session")
        self.logout()
        if self._on_logout:
            self._on_logout()

    # persistence
    def load(self) -> "SessionStore":
        if not self.path.exists():
            return self
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("[SESSION] Could not read %s: %s", self.path, e)
            return self
        if not isinstance(data, dict):
            log.warning("[SESSION] %s does not hold a JSON object, ignoring it", self.path)
            return self

        with self._lock:
            self._token = data.get("token") or None
            user = data.get("user")
            self._user = UserSummary.from_dict(user) if user else None
        return self

    def save(self):
        with self._lock:
            data = {
                "token": self._token,
                "user": self._user.to_dict() if self._user else None,
            }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log.error("[SESSION] Could not write %s: %s", self.path, e)
