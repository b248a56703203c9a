"""Unit tests for the lesson timeline."""

import pytest

from hanzicards.timers import LessonTimeline


class TestLessonTimeline:
    def test_one_shot_fires_once_when_due(self) -> None:
        timeline = LessonTimeline()
        calls = []
        timeline.schedule_once(1.5, lambda: calls.append(timeline.now))

        assert timeline.advance(1.0) == 0
        assert timeline.advance(0.5) == 1
        assert timeline.advance(10) == 0
        assert calls == [1.5]

    def test_repeating_task_fires_every_interval(self) -> None:
        timeline = LessonTimeline()
        calls = []
        timeline.schedule_repeating(1.0, lambda: calls.append(timeline.now))

        assert timeline.advance(3.0) == 3
        assert calls == [1.0, 2.0, 3.0]
        assert timeline.advance(0.5) == 0
        assert timeline.now == 3.5

    def test_pause_holds_every_task(self) -> None:
        timeline = LessonTimeline()
        calls = []
        timeline.schedule_repeating(1.0, lambda: calls.append("tick"))
        timeline.schedule_once(1.5, lambda: calls.append("advance"))

        timeline.pause()
        assert timeline.advance(100) == 0
        assert calls == []
        assert timeline.now == 0.0

        timeline.resume()
        timeline.advance(2.0)
        assert calls == ["tick", "advance", "tick"]

    def test_cancelled_task_does_not_fire(self) -> None:
        timeline = LessonTimeline()
        calls = []
        task = timeline.schedule_once(1.0, lambda: calls.append("x"))
        task.cancel()
        timeline.advance(2.0)
        assert calls == []
        assert timeline.pending() == []

    def test_priority_breaks_ties(self) -> None:
        timeline = LessonTimeline()
        calls = []
        timeline.schedule_once(1.0, lambda: calls.append("late"), priority=1)
        timeline.schedule_once(1.0, lambda: calls.append("early"), priority=0)
        timeline.advance(1.0)
        assert calls == ["early", "late"]

    def test_callback_can_cancel_a_task_due_at_the_same_time(self) -> None:
        timeline = LessonTimeline()
        calls = []
        other = timeline.schedule_once(1.0, lambda: calls.append("other"), priority=1)
        timeline.schedule_once(1.0, other.cancel, priority=0)
        assert timeline.advance(1.0) == 1
        assert calls == []

    def test_callback_pausing_stops_the_rest(self) -> None:
        timeline = LessonTimeline()
        calls = []

        def pause_now() -> None:
            calls.append(timeline.now)
            timeline.pause()

        timeline.schedule_repeating(1.0, pause_now)
        timeline.advance(5.0)
        assert calls == [1.0]
        assert timeline.now == 1.0

    def test_cancel_all(self) -> None:
        timeline = LessonTimeline()
        timeline.schedule_once(1.0, lambda: None)
        timeline.schedule_repeating(1.0, lambda: None)
        timeline.cancel_all()
        assert timeline.pending() == []
        assert timeline.advance(5.0) == 0

    def test_cannot_go_backwards(self) -> None:
        with pytest.raises(ValueError):
            LessonTimeline().advance(-1)
