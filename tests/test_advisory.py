"""Advisory side effects never raise into the caller."""

import asyncio
import unittest

from memoless_engine.advisory import (
    drain_advisories,
    reset_advisories_for_testing,
    run_advisory,
    spawn_advisory,
)


async def _boom():
    raise RuntimeError("webhook down")


class TestAdvisory(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        reset_advisories_for_testing()

    async def test_success_keeps_value(self):
        async def _value():
            return 42

        result = await run_advisory("answer", _value())
        self.assertTrue(result.ok)
        self.assertEqual(result.value, 42)

    async def test_failure_is_reported_not_raised(self):
        result = await run_advisory("webhook", _boom())
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "webhook down")

    async def test_cancellation_propagates(self):
        task = asyncio.ensure_future(run_advisory("slow", asyncio.sleep(10)))
        await asyncio.sleep(0)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

    async def test_spawned_tasks_drain(self):
        seen = []

        async def _record():
            await asyncio.sleep(0)
            seen.append("done")

        task = spawn_advisory("record", _record())
        failing = spawn_advisory("boom", _boom())
        await drain_advisories(timeout=1)
        self.assertEqual(seen, ["done"])
        self.assertTrue(task.result().ok)
        self.assertFalse(failing.result().ok)
