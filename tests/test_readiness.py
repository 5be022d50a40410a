"""Unit tests for DeviceReadiness."""

import unittest

from hwsession.errors import BootloaderModeError
from hwsession.readiness import DeviceReadiness, ReadinessState


class TestDeviceReadiness(unittest.TestCase):
    """Test the readiness gate state machine."""

    def setUp(self):
        self.readiness = DeviceReadiness()

    def test_starts_pending(self):
        self.assertIs(self.readiness.state, ReadinessState.PENDING)
        self.assertFalse(self.readiness.wait().done())

    def test_wait_returns_same_gate_until_reset(self):
        self.assertIs(self.readiness.wait(), self.readiness.wait())

    def test_resolve(self):
        gate = self.readiness.wait()

        self.readiness.resolve()

        self.assertIs(self.readiness.state, ReadinessState.READY)
        self.assertTrue(gate.done())
        self.assertIsNone(gate.result())

    def test_fail(self):
        gate = self.readiness.wait()
        error = BootloaderModeError()

        self.readiness.fail(error)

        self.assertIs(self.readiness.state, ReadinessState.ERROR)
        self.assertIs(gate.exception(), error)

    def test_reset_allocates_fresh_gate(self):
        old = self.readiness.wait()
        self.readiness.resolve()

        new = self.readiness.reset()

        self.assertIsNot(old, new)
        self.assertIs(self.readiness.wait(), new)
        self.assertIs(self.readiness.state, ReadinessState.PENDING)
        # Holders of the old gate keep its outcome
        self.assertTrue(old.done())
        self.assertFalse(new.done())

    def test_settling_twice_is_ignored(self):
        gate = self.readiness.wait()
        self.readiness.resolve()

        with self.assertLogs("hwsession.readiness", level="WARNING"):
            self.readiness.fail(BootloaderModeError())

        self.assertIs(self.readiness.state, ReadinessState.READY)
        self.assertIsNone(gate.exception())

    def test_bootloader_cycle(self):
        """PENDING -> ERROR -> PENDING -> READY."""
        states = [self.readiness.state]

        self.readiness.fail(BootloaderModeError())
        states.append(self.readiness.state)
        self.readiness.reset()
        states.append(self.readiness.state)
        self.readiness.resolve()
        states.append(self.readiness.state)

        self.assertEqual(states, [
            ReadinessState.PENDING,
            ReadinessState.ERROR,
            ReadinessState.PENDING,
            ReadinessState.READY,
        ])

    def test_waiters_run_on_resolve(self):
        seen = []
        self.readiness.wait().add_done_callback(lambda gate: seen.append(gate.result()))

        self.assertEqual(seen, [])
        self.readiness.resolve()
        self.assertEqual(seen, [None])


if __name__ == '__main__':
    unittest.main()
