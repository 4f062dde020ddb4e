from __future__ import annotations

import threading
import time
import unittest
from datetime import datetime, timezone
from typing import Callable, Optional

from codedraw.draw import (
    CodeRange,
    PseudoRandomSource,
    RepeatingTask,
    Sampler,
    ThreadingScheduler,
)
from codedraw.draw.codes import MAX_COUNT
from codedraw.draw.controller import DrawController, DrawState
from codedraw.store import MemoryStorage, STORAGE_KEY, SessionState, SessionStore


class ManualTask:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False
        self.joined = False

    def cancel(self) -> None:
        self.cancelled = True

    def join(self, timeout: Optional[float] = None) -> None:
        self.joined = True

    def fire(self) -> None:
        # Fires even after cancel() to mimic a tick that was already due.
        self.callback()


class ManualScheduler:
    def __init__(self) -> None:
        self.tasks: list[ManualTask] = []
        self.intervals: list[float] = []

    def every(self, interval: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(callback)
        self.tasks.append(task)
        self.intervals.append(interval)
        return task


class DrawControllerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = MemoryStorage()
        self.store = SessionStore(self.storage)
        self.scheduler = ManualScheduler()
        self.published: list[list[str]] = []
        self.controller = self._make_controller()

    def _make_controller(self, seed: int = 7) -> DrawController:
        return DrawController(
            self.store,
            sampler=Sampler(PseudoRandomSource(seed)),
            scheduler=self.scheduler,
            clock=lambda: datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
            on_display=self.published.append,
        )

    def _draw(self) -> list[str]:
        self.assertTrue(self.controller.start())
        draw_round = self.controller.stop()
        self.assertIsNotNone(draw_round)
        return list(draw_round.codes)

    def test_first_run_uses_defaults(self) -> None:
        status = self.controller.status
        self.assertEqual(self.controller.code_range, CodeRange("0000", "0165"))
        self.assertEqual(self.controller.count, 1)
        self.assertEqual(status.remaining, 166)
        self.assertEqual(status.state, DrawState.IDLE)
        self.assertTrue(status.can_start)
        self.assertFalse(status.can_stop)
        self.assertTrue(status.can_reset)
        self.assertNotIn(STORAGE_KEY, self.storage)

    def test_start_schedules_previews(self) -> None:
        self.controller.set_count(3)
        self.assertTrue(self.controller.start())
        self.assertEqual(self.controller.state, DrawState.ROLLING)
        self.assertEqual(self.scheduler.intervals, [0.05])

        pool = set(self.controller.pool)
        task = self.scheduler.tasks[0]
        for _ in range(5):
            task.fire()
            self.assertEqual(len(self.controller.display), 3)
            self.assertTrue(set(self.controller.display) <= pool)
        self.assertEqual(len(self.published), 5)
        self.assertEqual(self.controller.history, [])

    def test_start_twice_keeps_one_cycle(self) -> None:
        self.assertTrue(self.controller.start())
        self.assertFalse(self.controller.start())
        self.assertEqual(len(self.scheduler.tasks), 1)

        draw_round = self.controller.stop()
        self.assertIsNotNone(draw_round)
        self.assertEqual(len(self.controller.history), 1)
        self.assertIsNone(self.controller.stop())
        self.assertEqual(len(self.controller.history), 1)

    def test_stop_while_idle_is_noop(self) -> None:
        self.assertIsNone(self.controller.stop())
        self.assertEqual(self.controller.history, [])
        self.assertNotIn(STORAGE_KEY, self.storage)

    def test_stop_commits_and_persists(self) -> None:
        self.controller.set_count(4)
        self.controller.start()
        task = self.scheduler.tasks[0]
        task.fire()

        draw_round = self.controller.stop()
        self.assertTrue(task.cancelled)
        self.assertEqual(draw_round.round, 1)
        self.assertEqual(draw_round.time, "2026-01-01T12:00:00+00:00")
        self.assertEqual(len(draw_round.codes), 4)
        self.assertEqual(len(set(draw_round.codes)), 4)
        self.assertEqual(self.controller.display, list(draw_round.codes))
        self.assertEqual(self.published[-1], list(draw_round.codes))
        self.assertEqual(self.controller.state, DrawState.IDLE)
        self.assertEqual(self.controller.remaining, 162)

        persisted = self.store.load()
        self.assertEqual(persisted.history, (draw_round,))
        self.assertEqual(persisted.count, 4)

    def test_late_tick_after_stop_publishes_nothing(self) -> None:
        self.controller.start()
        task = self.scheduler.tasks[0]
        draw_round = self.controller.stop()
        published_before = len(self.published)

        task.fire()
        self.assertEqual(self.controller.display, list(draw_round.codes))
        self.assertEqual(len(self.published), published_before)

    def test_no_code_is_drawn_twice(self) -> None:
        self.controller.set_range("0000", "0009")
        self.controller.set_count(3)
        drawn: list[str] = []
        for expected in (3, 3, 3, 1):
            codes = self._draw()
            self.assertEqual(len(codes), expected)
            drawn.extend(codes)

        self.assertEqual(len(drawn), len(set(drawn)))
        self.assertEqual(set(drawn), set(CodeRange("0000", "0009").codes()))
        self.assertEqual(self.controller.pool, [])
        self.assertEqual([r.round for r in self.controller.history], [4, 3, 2, 1])

        status = self.controller.status
        self.assertEqual(status.remaining, 0)
        self.assertFalse(status.can_start)
        self.assertFalse(self.controller.start())

    def test_over_limit_clamps_with_warning(self) -> None:
        self.controller.set_range("0000", "0004")
        self.controller.set_count(8)
        status = self.controller.status
        self.assertTrue(status.over_limit)
        self.assertFalse(status.count_invalid)
        self.assertEqual(status.effective_count, 5)
        self.assertTrue(status.can_start)

        with self.assertLogs("codedraw.draw.controller", level="WARNING"):
            self.assertTrue(self.controller.start())
        codes = self.controller.stop().codes
        self.assertEqual(sorted(codes), ["0000", "0001", "0002", "0003", "0004"])

    def test_blank_or_zero_count_blocks_start(self) -> None:
        for raw in ("", "abc", 0, None):
            with self.subTest(count=raw):
                self.controller.set_count(raw)
                self.assertTrue(self.controller.status.count_invalid)
                self.assertFalse(self.controller.status.over_limit)
                self.assertFalse(self.controller.start())
        self.assertEqual(self.scheduler.tasks, [])

    def test_invalid_ranges_block_start(self) -> None:
        cases = [
            ("0010", "0005", False),
            ("000", "0165", True),
            ("", "0165", False),
            ("0000", "", False),
        ]
        for start, end, mismatch in cases:
            with self.subTest(start=start, end=end):
                self.controller.set_range(start, end)
                status = self.controller.status
                self.assertTrue(status.settings_invalid)
                self.assertEqual(status.length_mismatch, mismatch)
                self.assertEqual(status.remaining, 0)
                self.assertFalse(self.controller.start())

    def test_range_input_is_sanitized(self) -> None:
        code_range = self.controller.set_range("00a5", " 0x10")
        self.assertEqual(code_range, CodeRange("005", "010"))
        self.assertEqual(self.controller.remaining, 6)
        self.assertEqual(self.store.load().start, "005")

    def test_cycle_uses_pool_frozen_at_start(self) -> None:
        self.controller.set_range("0000", "0002")
        self.controller.set_count(2)
        self.controller.start()
        self.controller.set_range("0100", "0199")
        self.controller.set_count(50)

        task = self.scheduler.tasks[0]
        task.fire()
        self.assertTrue(set(self.controller.display) <= {"0000", "0001", "0002"})
        self.assertEqual(len(self.controller.display), 2)
        draw_round = self.controller.stop()
        self.assertEqual(len(draw_round.codes), 2)
        self.assertTrue(set(draw_round.codes) <= {"0000", "0001", "0002"})
        self.assertEqual(self.controller.remaining, 100)

    def test_reset_clears_history_and_persisted_state(self) -> None:
        self.controller.set_range("0000", "0019")
        self.controller.set_count(5)
        self._draw()
        self.assertIn(STORAGE_KEY, self.storage)

        self.controller.start()
        self.assertFalse(self.controller.reset())
        self.controller.stop()
        self.assertEqual(len(self.controller.history), 2)

        self.assertTrue(self.controller.reset())
        self.assertEqual(self.controller.history, [])
        self.assertEqual(self.controller.display, [])
        self.assertEqual(self.controller.pool, CodeRange("0000", "0019").codes())
        self.assertNotIn(STORAGE_KEY, self.storage)
        self.assertEqual(self.store.load(), SessionState())
        self.assertEqual(len(self._draw()), 5)
        self.assertEqual(self.controller.history[0].round, 1)

    def test_reload_restores_drawn_set_and_numbering(self) -> None:
        self.controller.set_range("0000", "0049")
        self.controller.set_count(10)
        first = set(self._draw())
        second = set(self._draw())
        pool_before = self.controller.pool

        reloaded = self._make_controller(seed=8)
        self.assertEqual(reloaded.pool, pool_before)
        self.assertEqual(reloaded.count, 10)
        self.assertEqual(reloaded.session_state(), self.controller.session_state())
        self.assertTrue(reloaded.start())
        third = reloaded.stop()
        self.assertEqual(third.round, 3)
        self.assertFalse(set(third.codes) & (first | second))

    def test_oversized_input_is_flagged_not_raised(self) -> None:
        self.controller.set_range("1" * 5000, "2" * 5000)
        status = self.controller.status
        self.assertTrue(status.settings_invalid)
        self.assertEqual(status.remaining, 0)
        self.assertEqual(self.controller.pool, [])
        self.assertFalse(self.controller.start())

        self.controller.set_range("0000", "0009")
        self.assertEqual(self.controller.set_count("9" * 5000), MAX_COUNT)
        status = self.controller.status
        self.assertTrue(status.over_limit)
        self.assertEqual(status.effective_count, 10)
        self.assertEqual(self.store.load().count, MAX_COUNT)

    def test_close_cancels_without_committing(self) -> None:
        self.controller.start()
        task = self.scheduler.tasks[0]
        self.controller.close()
        self.assertTrue(task.cancelled)
        self.assertTrue(task.joined)
        self.assertEqual(self.controller.state, DrawState.IDLE)
        self.assertEqual(self.controller.history, [])

    def test_failing_listener_after_commit_keeps_round_persisted(self) -> None:
        def on_display(codes: list[str]) -> None:
            raise RuntimeError("display gone")

        controller = DrawController(
            self.store,
            sampler=Sampler(PseudoRandomSource(3)),
            scheduler=self.scheduler,
            on_display=on_display,
        )
        self.assertTrue(controller.start())
        with self.assertRaises(RuntimeError):
            controller.stop()

        self.assertEqual(controller.state, DrawState.IDLE)
        self.assertEqual(len(self.store.load().history), 1)
        self.assertEqual(self.store.load().history, tuple(controller.history))


class ThreadedDrawControllerTests(unittest.TestCase):
    def test_repeating_task_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            RepeatingTask(0, lambda: None)

    def test_repeating_task_stops_after_cancel(self) -> None:
        ticks = threading.Semaphore(0)
        task = ThreadingScheduler().every(0.001, ticks.release)
        self.assertTrue(ticks.acquire(timeout=5))
        task.cancel()
        self.assertTrue(task.cancelled)

    def test_failing_tick_is_logged_and_stop_still_commits(self) -> None:
        tasks: list[RepeatingTask] = []
        calls: list[list[str]] = []

        class CapturingScheduler(ThreadingScheduler):
            def every(self, interval, callback):
                task = super().every(interval, callback)
                tasks.append(task)
                return task

        def on_display(codes: list[str]) -> None:
            calls.append(codes)
            if len(calls) == 1:
                raise RuntimeError("display gone")

        store = SessionStore(MemoryStorage())
        controller = DrawController(
            store,
            sampler=Sampler(PseudoRandomSource(5)),
            scheduler=CapturingScheduler(),
            tick_interval=0.002,
            on_display=on_display,
        )
        with self.assertLogs("codedraw.draw.scheduler", level="ERROR") as logs:
            self.assertTrue(controller.start())
            deadline = time.monotonic() + 5
            while not tasks[0].cancelled and time.monotonic() < deadline:
                time.sleep(0.005)
        self.assertTrue(tasks[0].cancelled)
        self.assertIn("Preview tick failed", logs.output[0])

        tasks[0].join(5)
        self.assertEqual(controller.state, DrawState.ROLLING)
        draw_round = controller.stop()
        self.assertIsNotNone(draw_round)
        self.assertEqual(calls[-1], list(draw_round.codes))
        self.assertEqual(store.load().history, (draw_round,))

    def test_close_waits_for_tick_thread(self) -> None:
        tasks: list[RepeatingTask] = []

        class CapturingScheduler(ThreadingScheduler):
            def every(self, interval, callback):
                task = super().every(interval, callback)
                tasks.append(task)
                return task

        controller = DrawController(
            SessionStore(MemoryStorage()),
            scheduler=CapturingScheduler(),
            tick_interval=0.002,
        )
        self.assertTrue(controller.start())
        controller.close(timeout=5)
        self.assertTrue(tasks[0].cancelled)
        self.assertFalse(tasks[0].is_alive())
        self.assertEqual(controller.history, [])

    def test_commit_is_last_published_display(self) -> None:
        seen_preview = threading.Event()
        published: list[list[str]] = []
        lock = threading.Lock()

        def on_display(codes: list[str]) -> None:
            with lock:
                published.append(codes)
            seen_preview.set()

        controller = DrawController(
            SessionStore(MemoryStorage()),
            sampler=Sampler(PseudoRandomSource(11)),
            scheduler=ThreadingScheduler(),
            tick_interval=0.002,
            on_display=on_display,
        )
        controller.set_count(5)
        self.assertTrue(controller.start())
        self.assertTrue(seen_preview.wait(timeout=5))

        draw_round = controller.stop()
        time.sleep(0.05)
        with lock:
            self.assertEqual(published[-1], list(draw_round.codes))
        self.assertEqual(controller.display, list(draw_round.codes))


if __name__ == "__main__":
    unittest.main()
