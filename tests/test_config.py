import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from rich.logging import RichHandler

from predictroom.config import ClientConfig, config_path, load_config, save_config
from predictroom.errors import AuthenticationError
from predictroom.navigation import LOGIN, Navigator, handle_auth_error
from predictroom.notify import NotificationLog, NotificationQueue, configure_logging
from predictroom.session import SessionStore, UserSummary


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_defaults_when_missing(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("PREDICTROOM_API_BASE_URL", None)
            config = load_config(self.dir)
        self.assertEqual(config.room_poll_interval, 5.0)
        self.assertEqual(config.room_min_spacing, 3.0)
        self.assertEqual(config.lobby_poll_interval, 20.0)
        self.assertEqual(config.start_countdown, 10)
        self.assertEqual(config.redirect_countdown, 10)

    def test_roundtrip_and_coercion(self) -> None:
        config = ClientConfig()
        config.start_countdown = 7
        save_config(config, self.dir)

        data = json.loads(config_path(self.dir).read_text(encoding="utf-8"))
        data["room_poll_interval"] = "8"
        data["waiting_timer"] = "oops"
        config_path(self.dir).write_text(json.dumps(data), encoding="utf-8")

        loaded = load_config(self.dir)
        self.assertEqual(loaded.start_countdown, 7)
        self.assertEqual(loaded.room_poll_interval, 8.0)
        self.assertEqual(loaded.waiting_timer, 30)

    def test_broken_file_falls_back(self) -> None:
        config_path(self.dir).write_text("{not json", encoding="utf-8")
        self.assertEqual(load_config(self.dir).reveal_countdown, 5)

    def test_non_object_file_falls_back(self) -> None:
        config_path(self.dir).write_text("[1, 2, 3]", encoding="utf-8")
        with self.assertLogs("predictroom.config", level="WARNING"):
            config = load_config(self.dir)
        self.assertEqual(config.room_poll_interval, 5.0)

    def test_env_overrides_base_url(self) -> None:
        with mock.patch.dict(os.environ, {"PREDICTROOM_API_BASE_URL": "http://localhost:5000/"}):
            self.assertEqual(load_config(self.dir).api_base_url, "http://localhost:5000/")


class SessionStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "session.json"

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_persists_token_and_user(self) -> None:
        SessionStore(self.path).login("tok", UserSummary("u1", name="Ann", referral_code="ANN1"))
        store = SessionStore(self.path).load()
        self.assertEqual(store.get_token(), "tok")
        self.assertEqual(store.user.name, "Ann")
        self.assertTrue(store.is_authenticated)

    def test_unauthorized_clears_and_calls_handler(self) -> None:
        calls = []
        store = SessionStore(self.path, on_logout=lambda: calls.append(True))
        store.login("tok")
        store.on_unauthorized()
        self.assertIsNone(store.get_token())
        self.assertEqual(calls, [True])
        self.assertFalse(SessionStore(self.path).load().is_authenticated)

    def test_unreadable_file_is_ignored(self) -> None:
        self.path.write_text("garbage", encoding="utf-8")
        self.assertIsNone(SessionStore(self.path).load().get_token())

    def test_non_object_file_is_ignored(self) -> None:
        self.path.write_text(json.dumps(["tok"]), encoding="utf-8")
        with self.assertLogs("predictroom.session", level="WARNING"):
            store = SessionStore(self.path).load()
        self.assertFalse(store.is_authenticated)
        self.assertIsNone(store.user)

    def test_auth_error_routes_to_login(self) -> None:
        navigator = Navigator()
        store = SessionStore(self.path, on_logout=lambda: navigator.go(LOGIN))
        store.login("tok")
        queue = NotificationQueue()
        handle_auth_error(AuthenticationError("Authentication failed"), queue, store)
        self.assertEqual(navigator.take_pending(), (LOGIN, {}))
        self.assertEqual([n.description for n in queue.drain()], ["Authentication failed"])


class NotificationTests(unittest.TestCase):
    def test_drops_oldest_when_full(self) -> None:
        queue = NotificationQueue(maxsize=3)
        for i in range(5):
            queue.info(f"n{i}")
        self.assertEqual(queue.dropped_count, 2)
        self.assertEqual([n.title for n in queue.drain()], ["n2", "n3", "n4"])
        self.assertTrue(queue.empty())

    def test_log_keeps_last_entries(self) -> None:
        queue = NotificationQueue()
        log = NotificationLog(maxlen=2)
        queue.error("a")
        queue.success("b")
        queue.warning("c")
        log.absorb(queue)
        self.assertEqual([n.title for n in log.snapshot()], ["b", "c"])
        self.assertEqual(log.snapshot()[-1].style, "yellow")
        self.assertEqual(queue.qsize(), 0)


class LoggingSetupTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self.saved_handlers = list(root.handlers)
        self.saved_level = root.level
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in self.saved_handlers:
            root.addHandler(handler)
        root.setLevel(self.saved_level)
        self.tmp.cleanup()

    def test_terminal_logging_uses_rich(self) -> None:
        configure_logging("DEBUG")
        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertIsInstance(root.handlers[0], RichHandler)
        self.assertEqual(root.level, logging.DEBUG)

    def test_switch_to_log_file(self) -> None:
        configure_logging("INFO")
        log_file = Path(self.tmp.name) / "predictroom.log"
        configure_logging("WARNING", log_file=str(log_file))
        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertIsInstance(root.handlers[0], logging.FileHandler)

        logging.getLogger("predictroom.test").warning("written to file")
        root.handlers[0].flush()
        self.assertIn("written to file", log_file.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
