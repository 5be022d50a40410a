"""Unit tests for the exactly-once callback guard."""

import threading
import unittest
from unittest.mock import MagicMock

from hwsession.guard import CallbackGuard, Once, ensure_callback, ensure_callback_close


class TestOnce(unittest.TestCase):
    """Test the once-cell."""

    def test_first_claim_wins(self):
        once = Once()
        self.assertFalse(once.fired)
        self.assertTrue(once.claim())
        self.assertFalse(once.claim())
        self.assertTrue(once.fired)

    def test_concurrent_claims(self):
        """Only one of many racing threads wins."""
        once = Once()
        wins = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            if once.claim():
                wins.append(threading.current_thread().name)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=2.0)

        self.assertEqual(len(wins), 1)


class TestCallbackGuard(unittest.TestCase):
    """Test guarded callbacks and bulk cancellation."""

    def setUp(self):
        self.guard = CallbackGuard()

    def test_fires_once_with_first_arguments(self):
        callback = MagicMock()
        guarded = self.guard.guard(callback)

        guarded(None, "1234")
        guarded(None, "9999")
        guarded("error")

        callback.assert_called_once_with(None, "1234")
        self.assertTrue(guarded.fired)

    def test_keyword_arguments_forwarded(self):
        callback = MagicMock()
        guarded = self.guard.guard(callback)

        guarded(value="x")

        callback.assert_called_once_with(value="x")

    def test_returns_callback_result_first_time(self):
        guarded = self.guard.guard(lambda: 42)

        self.assertEqual(guarded(), 42)
        self.assertIsNone(guarded())

    def test_outstanding_tracking(self):
        first = self.guard.guard(MagicMock())
        self.guard.guard(MagicMock())
        self.assertEqual(self.guard.outstanding, 2)

        first()
        self.assertEqual(self.guard.outstanding, 1)

    def test_close_all_invokes_each_outstanding_once(self):
        callbacks = [MagicMock() for _ in range(3)]
        guarded = [self.guard.guard(cb) for cb in callbacks]

        invoked = self.guard.close_all("exit")

        self.assertEqual(invoked, 3)
        for cb in callbacks:
            cb.assert_called_once_with("exit")
        self.assertEqual(self.guard.outstanding, 0)

        # Already settled, later invocations are ignored
        guarded[0](None, "late")
        callbacks[0].assert_called_once_with("exit")

    def test_second_close_all_invokes_nothing(self):
        callback = MagicMock()
        self.guard.guard(callback)

        self.guard.close_all("exit")
        invoked = self.guard.close_all("exit")

        self.assertEqual(invoked, 0)
        callback.assert_called_once_with("exit")

    def test_close_all_skips_fired(self):
        fired = MagicMock()
        pending = MagicMock()
        self.guard.guard(fired)(None, "done")
        self.guard.guard(pending)

        invoked = self.guard.close_all("exit")

        self.assertEqual(invoked, 1)
        fired.assert_called_once_with(None, "done")
        pending.assert_called_once_with("exit")

    def test_close_all_in_creation_order(self):
        order = []
        for i in range(5):
            self.guard.guard(lambda value, i=i: order.append(i))

        self.guard.close_all("exit")

        self.assertEqual(order, [0, 1, 2, 3, 4])

    def test_close_all_continues_after_error(self):
        failing = MagicMock(side_effect=RuntimeError("boom"))
        after = MagicMock()
        self.guard.guard(failing)
        self.guard.guard(after)

        with self.assertLogs("hwsession.guard", level="ERROR"):
            invoked = self.guard.close_all("exit")

        self.assertEqual(invoked, 2)
        after.assert_called_once_with("exit")

    def test_callback_error_propagates_to_caller(self):
        guarded = self.guard.guard(MagicMock(side_effect=ValueError("bad")))

        with self.assertRaises(ValueError):
            guarded()
        # Still counts as fired
        self.assertIsNone(guarded())
        self.assertEqual(self.guard.outstanding, 0)


class TestProcessWideGuard(unittest.TestCase):
    """Test the module-level registry helpers."""

    def setUp(self):
        ensure_callback_close(None)

    def test_ensure_callback_and_close(self):
        first = MagicMock()
        second = MagicMock()
        ensure_callback(first)
        ensure_callback(second)(None, "value")

        invoked = ensure_callback_close("exit")

        self.assertEqual(invoked, 1)
        first.assert_called_once_with("exit")
        second.assert_called_once_with(None, "value")
        self.assertEqual(ensure_callback_close("exit"), 0)


if __name__ == '__main__':
    unittest.main()
