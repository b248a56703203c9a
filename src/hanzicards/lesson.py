"""Lesson controller: the state machine behind a timed practice lesson."""

import logging
import random
from typing import Callable, List, Optional, Sequence, Union

from .config import LessonSettings
from .core import (
    CommandResult,
    Direction,
    Feedback,
    LessonMode,
    LessonSnapshot,
    Phase,
    Prompt,
    Rejection,
    Session,
    VocabularyEntry,
)
from .selector import TurnSelector
from .timers import LessonTimeline, ScheduledTask
from .tracker import record_answer
from .validator import compare

logger = logging.getLogger(__name__)

SpeechCallback = Callable[[str, str], object]

TICK_PRIORITY = 0
ADVANCE_PRIORITY = 1


def build_prompt(direction: Direction, entry: VocabularyEntry) -> Prompt:
    """Returns the question shown for `entry` when asked in `direction`."""
    if direction is Direction.HANZI_TO_PINYIN:
        question, answer_type = entry.word, "Pinyin"
    elif direction is Direction.PINYIN_TO_HANZI:
        question = f"{entry.pinyin} ({entry.translation})"
        answer_type = "Characters (from pinyin and translation)"
    else:
        question, answer_type = entry.translation, "Characters (from translation)"
    return Prompt(
        question=question,
        answer_type=answer_type,
        expected_hanzi=entry.word,
        expected_pinyin=entry.pinyin,
    )


def format_clock(remaining: int) -> str:
    return f"{remaining // 60}:{remaining % 60:02d}"


class LessonController:
    """Runs timed lessons over an in-memory deck.

    The controller is the only writer of its session. Commands never raise:
    a command that does not apply returns a rejected `CommandResult` and
    leaves the session untouched.

    Timing is driven through `advance_clock`, which runs the countdown tick
    and the pending auto-advance off one `LessonTimeline`. Pausing the lesson
    pauses that timeline, so neither source moves until the lesson resumes.

    Args:
        settings: Lesson parameters. Defaults are used when omitted.
        rng: Random source for shuffles and mixed-mode directions.
        speech: Optional `(text, locale)` callback used to pronounce words.
    """

    def __init__(
        self,
        settings: Optional[LessonSettings] = None,
        rng: Optional[random.Random] = None,
        speech: Optional[SpeechCallback] = None,
    ):
        self.settings = settings or LessonSettings()
        self.selector = TurnSelector(rng)
        self.speech = speech
        self.timeline = LessonTimeline()
        self.session: Optional[Session] = None
        self.mode = LessonMode.HANZI_TO_PINYIN
        self._deck: List[VocabularyEntry] = []
        self._tick_task: Optional[ScheduledTask] = None
        self._advance_task: Optional[ScheduledTask] = None

    @property
    def phase(self) -> Phase:
        if self.session is None:
            return Phase.SETUP
        return self.session.phase

    @property
    def has_pending_advance(self) -> bool:
        return self._advance_task is not None and self._advance_task.active

    def _reject(self, command: str, reason: Rejection) -> CommandResult:
        logger.debug("Ignored %s: %s", command, reason.value)
        return CommandResult.rejected(reason)

    def _active_session(self) -> Optional[Session]:
        if self.session is not None and self.session.phase is Phase.ACTIVE:
            return self.session
        return None

    def _reset_timers(self) -> None:
        self.timeline.cancel_all()
        self.timeline.resume()
        self._tick_task = None
        self._advance_task = None

    def _cancel_advance(self) -> None:
        if self._advance_task is not None:
            self._advance_task.cancel()
            self._advance_task = None

    def _begin(self) -> None:
        self._reset_timers()
        deck, direction = self.selector.initialize(self._deck, self.mode)
        self.session = Session(
            deck=deck,
            phase=Phase.ACTIVE,
            mode=self.mode,
            direction=direction,
            remaining=self.settings.lesson_duration,
        )
        self._tick_task = self.timeline.schedule_repeating(
            self.settings.tick_interval, self._on_tick, name="tick", priority=TICK_PRIORITY
        )
        logger.info(
            "Lesson started: %d cards, mode=%s, %d time units",
            len(deck),
            self.mode.value,
            self.settings.lesson_duration,
        )

    def start(
        self,
        deck: Sequence[VocabularyEntry],
        mode: Union[LessonMode, str] = LessonMode.HANZI_TO_PINYIN,
    ) -> CommandResult:
        """Starts a lesson over `deck` from setup or from the summary.

        A lesson in progress must be exited first. An empty deck is rejected.
        """
        if self.phase is Phase.ACTIVE:
            return self._reject("start", Rejection.NOT_SETUP)
        if not deck:
            return self._reject("start", Rejection.INVALID_START)
        self._deck = list(deck)
        self.mode = LessonMode(mode)
        self._begin()
        return CommandResult.ok()

    def _on_tick(self) -> None:
        self.tick()

    def tick(self) -> CommandResult:
        """Takes one time unit off the clock; the last one ends the lesson."""
        session = self._active_session()
        if session is None:
            return self._reject("tick", Rejection.NOT_ACTIVE)
        if session.paused:
            return self._reject("tick", Rejection.PAUSED)
        if session.remaining > 0:
            session.remaining -= 1
        if session.remaining == 0:
            self._finish()
        return CommandResult.ok()

    def _finish(self) -> None:
        # A pending auto-advance never fires once time is up.
        self._cancel_advance()
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None
        self.session.phase = Phase.SUMMARY
        logger.info(
            "Lesson finished: score %d/%d, %d words to review",
            self.session.score,
            self.session.turns_answered,
            len(self.session.missed),
        )

    def submit_answer(self, text: str) -> CommandResult:
        """Scores an answer for the current turn and schedules the next one."""
        session = self._active_session()
        if session is None:
            return self._reject("submit_answer", Rejection.NOT_ACTIVE)
        if session.paused:
            return self._reject("submit_answer", Rejection.PAUSED)
        if session.feedback is not Feedback.NONE:
            return self._reject("submit_answer", Rejection.DUPLICATE_SUBMISSION)
        if not text or not text.strip():
            return self._reject("submit_answer", Rejection.EMPTY_INPUT)

        entry = session.current_entry
        is_correct = compare(
            session.direction,
            entry,
            text,
            neutral_tone_optional=self.settings.neutral_tone_optional,
        )
        record_answer(session, is_correct, entry)
        session.user_input = text
        session.last_answer = text
        session.feedback = Feedback.CORRECT if is_correct else Feedback.INCORRECT
        logger.debug("Answer %r for %s: %s", text, entry.word, session.feedback.value)

        self._advance_task = self.timeline.schedule_once(
            self.settings.feedback_delay,
            self._on_advance,
            name="advance",
            priority=ADVANCE_PRIORITY,
        )
        return CommandResult.ok()

    def _on_advance(self) -> None:
        self._advance_task = None
        self.resolve_feedback()

    def resolve_feedback(self) -> CommandResult:
        """Clears feedback and moves on to the next turn."""
        session = self._active_session()
        if session is None:
            return self._reject("resolve_feedback", Rejection.NOT_ACTIVE)
        if session.paused:
            return self._reject("resolve_feedback", Rejection.PAUSED)
        if session.feedback is Feedback.NONE:
            return self._reject("resolve_feedback", Rejection.NO_FEEDBACK)
        self._cancel_advance()
        self.selector.advance(session)
        return CommandResult.ok()

    def pause(self) -> CommandResult:
        session = self._active_session()
        if session is None:
            return self._reject("pause", Rejection.NOT_ACTIVE)
        session.paused = True
        self.timeline.pause()
        return CommandResult.ok()

    def resume(self) -> CommandResult:
        session = self._active_session()
        if session is None:
            return self._reject("resume", Rejection.NOT_ACTIVE)
        session.paused = False
        self.timeline.resume()
        return CommandResult.ok()

    def toggle_pause(self) -> CommandResult:
        session = self._active_session()
        if session is not None and session.paused:
            return self.resume()
        return self.pause()

    def exit(self) -> CommandResult:
        """Abandons the lesson and returns to setup."""
        self._reset_timers()
        if self.session is not None:
            logger.info("Lesson exited")
        self.session = None
        return CommandResult.ok()

    def restart(self) -> CommandResult:
        """Runs the same deck and mode again with a fresh shuffle."""
        if self.phase is not Phase.SUMMARY:
            return self._reject("restart", Rejection.NOT_SUMMARY)
        self._begin()
        return CommandResult.ok()

    def choose_different_mode(self) -> CommandResult:
        if self.phase is not Phase.SUMMARY:
            return self._reject("choose_different_mode", Rejection.NOT_SUMMARY)
        self._reset_timers()
        self.session = None
        return CommandResult.ok()

    def advance_clock(self, seconds: float) -> CommandResult:
        """Lets `seconds` of lesson time pass, firing ticks and auto-advance."""
        session = self._active_session()
        if session is None:
            return self._reject("advance_clock", Rejection.NOT_ACTIVE)
        if session.paused:
            return self._reject("advance_clock", Rejection.PAUSED)
        self.timeline.advance(max(0.0, seconds))
        return CommandResult.ok()

    def speak(self, text: str) -> None:
        """Hands `text` to the speech callback, if any, and ignores the result."""
        if self.speech is None or not text:
            return
        try:
            self.speech(text, self.settings.speech_locale)
        except Exception as e:
            logger.warning("Speech playback failed for %r: %s", text, e)

    def snapshot(self) -> LessonSnapshot:
        """Returns what the presentation layer needs to render the lesson."""
        session = self.session
        if session is None:
            return LessonSnapshot(phase=Phase.SETUP, mode=self.mode)

        prompt = None
        if session.current_entry is not None:
            prompt = build_prompt(session.direction, session.current_entry)
        progress = min(session.turns_answered / self.settings.target_turns * 100, 100.0)
        return LessonSnapshot(
            phase=session.phase,
            mode=session.mode,
            direction=session.direction,
            prompt=prompt,
            remaining=session.remaining,
            clock=format_clock(session.remaining),
            score=session.score,
            turns_answered=session.turns_answered,
            progress=progress,
            paused=session.paused,
            feedback=session.feedback,
            missed=list(session.missed),
        )
