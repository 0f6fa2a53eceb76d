import threading
import unittest

from predictroom.poller import Poller

from tests.fakes import ManualClock


class PollerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = ManualClock()
        self.calls = 0

    def fetch(self) -> None:
        self.calls += 1

    def make(self, **kwargs) -> Poller:
        kwargs.setdefault("interval", 5.0)
        return Poller(self.fetch, clock=self.clock, **kwargs)

    def test_first_call_is_never_throttled(self) -> None:
        poller = self.make(min_spacing=3.0)
        self.assertTrue(poller.poll())
        self.assertEqual(self.calls, 1)

    def test_calls_closer_than_spacing_make_one_request(self) -> None:
        poller = self.make(min_spacing=3.0)
        poller.poll()
        self.clock.advance(1.0)
        self.assertFalse(poller.poll())
        self.assertEqual(self.calls, 1)
        self.assertEqual(poller.skipped_count, 1)

        self.clock.advance(2.5)
        self.assertTrue(poller.poll())
        self.assertEqual(self.calls, 2)

    def test_spacing_defaults_to_interval(self) -> None:
        poller = self.make(interval=20.0)
        poller.poll()
        self.clock.advance(19.0)
        self.assertFalse(poller.poll())
        self.clock.advance(1.0)
        self.assertTrue(poller.poll())

    def test_force_bypasses_spacing(self) -> None:
        poller = self.make(min_spacing=3.0)
        poller.poll()
        self.assertTrue(poller.poll(force=True))
        self.assertEqual(self.calls, 2)

    def test_overlapping_fetch_is_skipped(self) -> None:
        entered = threading.Event()
        release = threading.Event()
        active = []
        overlaps = []

        def slow_fetch():
            if active:
                overlaps.append(True)
            active.append(True)
            entered.set()
            release.wait(2.0)
            active.pop()

        poller = Poller(slow_fetch, interval=5.0, min_spacing=0.0, clock=self.clock)
        worker = threading.Thread(target=poller.poll)
        worker.start()
        self.assertTrue(entered.wait(2.0))
        self.assertTrue(poller.in_flight)

        # Even a forced attempt waits its turn behind the in-flight guard
        self.assertFalse(poller.poll(force=True))
        release.set()
        worker.join(2.0)

        self.assertEqual(poller.call_count, 1)
        self.assertEqual(poller.skipped_count, 1)
        self.assertEqual(overlaps, [])
        self.assertFalse(poller.in_flight)

    def test_fetch_errors_do_not_escape(self) -> None:
        def boom():
            raise RuntimeError("server on fire")

        poller = Poller(boom, interval=5.0, clock=self.clock)
        self.assertTrue(poller.poll())
        self.assertFalse(poller.in_flight)

    def test_stop_prevents_further_fetches(self) -> None:
        poller = self.make()
        poller.stop()
        self.assertFalse(poller.poll(force=True))
        self.assertEqual(self.calls, 0)
        self.assertTrue(poller.stopped)

    def test_stop_after_grace_delay(self) -> None:
        poller = self.make(min_spacing=0.0)
        poller.poll()
        poller.stop_after(2.0)

        self.clock.advance(1.0)
        self.assertTrue(poller.poll())
        self.assertFalse(poller.stopped)

        self.clock.advance(1.0)
        self.assertFalse(poller.poll())
        self.assertTrue(poller.stopped)
        self.assertEqual(self.calls, 2)

    def test_stop_after_keeps_first_deadline(self) -> None:
        poller = self.make(min_spacing=0.0)
        poller.stop_after(2.0)
        self.clock.advance(1.5)
        poller.stop_after(2.0)
        self.clock.advance(0.5)
        self.assertFalse(poller.poll())

    def test_refresh_request_right_after_a_fetch_is_dropped(self) -> None:
        poller = self.make(min_spacing=3.0)
        poller.poll()
        self.clock.advance(1.0)
        thread = poller.request_refresh()
        thread.join(2.0)
        self.assertEqual(self.calls, 1)
        self.assertEqual(poller.skipped_count, 1)

    def test_refresh_request_after_spacing_fetches(self) -> None:
        poller = self.make(min_spacing=3.0)
        poller.poll()
        self.clock.advance(3.0)
        poller.request_refresh().join(2.0)
        self.assertEqual(self.calls, 2)

    def test_no_refresh_request_once_stopped(self) -> None:
        poller = self.make()
        poller.stop()
        self.assertIsNone(poller.request_refresh())
        self.assertEqual(self.calls, 0)

    def test_background_loop_makes_initial_fetch(self) -> None:
        fetched = threading.Event()
        poller = Poller(fetched.set, interval=60.0, name="TestPoller")
        poller.start()
        try:
            self.assertTrue(fetched.wait(2.0))
            self.assertTrue(poller.is_running)
        finally:
            poller.stop()
            poller.join(2.0)
        self.assertFalse(poller.is_running)


if __name__ == "__main__":
    unittest.main()
