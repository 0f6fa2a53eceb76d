import json
import logging
import os
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.utpfund.live/"

# Config dir: $PREDICTROOM_HOME wins, otherwise ~/.predictroom
if "PREDICTROOM_HOME" in os.environ:
    CONFIG_DIR = Path(os.environ["PREDICTROOM_HOME"])
else:
    CONFIG_DIR = Path.home() / ".predictroom"

CONFIG_FILE_NAME = "predictroom.json"
SESSION_FILE_NAME = "session.json"


class ClientConfig:
    """Client configuration (persisted as predictroom.json)"""

    def __init__(self):
        # Server
        self.api_base_url = DEFAULT_API_BASE_URL
        self.request_timeout = 10.0

        # Polling
        self.room_poll_interval = 5.0
        self.room_min_spacing = 3.0
        self.lobby_poll_interval = 20.0
        self.completion_grace = 2.0

        # Local timers (seconds)
        self.waiting_timer = 30
        self.start_countdown = 10
        self.reveal_countdown = 5
        self.redirect_countdown = 10

        # UI
        self.default_game = "big_small"
        self.log_level = "INFO"
        self.log_file = "predictroom.log"

    def to_dict(self) -> dict:
        return dict(vars(self))

    @staticmethod
    def from_dict(data: dict) -> "ClientConfig":
        config = ClientConfig()
        for key, default in vars(ClientConfig()).items():
            value = data.get(key, default)
            # Keep the default's type so a hand-edited "5" still works as 5.0
            if isinstance(default, float) and isinstance(value, (int, str)):
                try:
                    value = float(value)
                except ValueError:
                    log.warning("[CONFIG] Bad value for %s: %r, using %r", key, value, default)
                    value = default
            elif isinstance(default, int) and isinstance(value, str):
                try:
                    value = int(value)
                except ValueError:
                    log.warning("[CONFIG] Bad value for %s: %r, using %r", key, value, default)
                    value = default
            setattr(config, key, value)
        return config


def config_path(config_dir: Optional[Path] = None) -> Path:
    return (config_dir or CONFIG_DIR) / CONFIG_FILE_NAME


def load_config(config_dir: Optional[Path] = None) -> ClientConfig:
    """
    Load configuration from the config dir

    Missing file or unreadable JSON falls back to defaults. The
    PREDICTROOM_API_BASE_URL environment variable overrides the file.
    """
    path = config_path(config_dir)
    config = ClientConfig()

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                config = ClientConfig.from_dict(data)
                log.debug("[CONFIG] Loaded %s", path)
            else:
                log.warning("[CONFIG] %s does not hold a JSON object, using defaults", path)
        except (OSError, ValueError) as e:
            log.warning("[CONFIG] Could not read %s (%s), using defaults", path, e)
            config = ClientConfig()

    env_url = os.getenv("PREDICTROOM_API_BASE_URL")
    if env_url:
        config.api_base_url = env_url

    return config


def save_config(config: ClientConfig, config_dir: Optional[Path] = None) -> Path:
    path = config_path(config_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
    return path
