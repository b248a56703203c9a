"""Core models for the hanzicards practice-session engine."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Direction(str, Enum):
    """Which field of an entry is shown and which one is expected back.

    Attributes:
        HANZI_TO_PINYIN: Characters are shown, the pinyin is expected.
        PINYIN_TO_HANZI: Pinyin and translation are shown, the characters are expected.
        TRANSLATION_TO_HANZI: The translation is shown, the characters are expected.
    """

    HANZI_TO_PINYIN = "hanzi_to_pinyin"
    PINYIN_TO_HANZI = "pinyin_to_hanzi"
    TRANSLATION_TO_HANZI = "translation_to_hanzi"


class LessonMode(str, Enum):
    """Direction policy for a whole lesson.

    Attributes:
        HANZI_TO_PINYIN: Every turn uses `Direction.HANZI_TO_PINYIN`.
        PINYIN_TO_HANZI: Every turn uses `Direction.PINYIN_TO_HANZI`.
        TRANSLATION_TO_HANZI: Every turn uses `Direction.TRANSLATION_TO_HANZI`.
        MIXED: The direction is drawn again for every turn.
    """

    HANZI_TO_PINYIN = "hanzi_to_pinyin"
    PINYIN_TO_HANZI = "pinyin_to_hanzi"
    TRANSLATION_TO_HANZI = "translation_to_hanzi"
    MIXED = "mixed"

    def fixed_direction(self) -> Optional[Direction]:
        """Returns the concrete direction of a fixed mode, or None for MIXED."""
        if self is LessonMode.MIXED:
            return None
        return Direction(self.value)


DIRECTIONS: List[Direction] = [
    Direction.HANZI_TO_PINYIN,
    Direction.PINYIN_TO_HANZI,
    Direction.TRANSLATION_TO_HANZI,
]


class Phase(str, Enum):
    SETUP = "setup"
    ACTIVE = "active"
    SUMMARY = "summary"


class Feedback(str, Enum):
    NONE = "none"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class VocabularyEntry(BaseModel):
    """A single vocabulary flashcard.

    Attributes:
        word: The Chinese word, unique within a deck.
        pinyin: The Hanyu Pinyin of the word, usually with tone marks.
        translation: The meaning of the word.
        hsk_level: HSK level "1" to "6", or "unknown".
        example_sentence: An example sentence containing the word.
        notes: Part of speech, synonyms and similar remarks.
        date_added: When the card was saved to the deck.
    """

    word: str = Field(..., description="The Chinese vocabulary word")
    pinyin: str = Field(..., description="Hanyu Pinyin of the word")
    translation: str = Field(..., description="Translation of the word")
    hsk_level: str = Field(default="unknown", description="HSK level or 'unknown'")
    example_sentence: str = Field(default="", description="Example sentence")
    notes: str = Field(default="", description="Additional notes")
    date_added: Optional[datetime] = Field(
        default=None, description="When the card was saved"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("hsk_level", mode="before")
    @classmethod
    def _coerce_hsk_level(cls, value: object) -> object:
        if value is None or value == "":
            return "unknown"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value


class Session(BaseModel):
    """Mutable state of one lesson.

    Only the lesson controller writes to a session. It is created on start,
    discarded on exit and replaced on restart.
    """

    deck: List[VocabularyEntry] = Field(default_factory=list)
    index: int = 0
    phase: Phase = Phase.SETUP
    mode: LessonMode = LessonMode.HANZI_TO_PINYIN
    direction: Direction = Direction.HANZI_TO_PINYIN
    remaining: int = 0
    turns_answered: int = 0
    score: int = 0
    missed: List[VocabularyEntry] = Field(default_factory=list)
    feedback: Feedback = Feedback.NONE
    paused: bool = False
    user_input: str = ""
    last_answer: Optional[str] = None

    @property
    def current_entry(self) -> Optional[VocabularyEntry]:
        if not self.deck:
            return None
        return self.deck[self.index]


class Prompt(BaseModel):
    """What the presentation layer shows for the current turn."""

    question: str
    answer_type: str
    expected_hanzi: str
    expected_pinyin: str

    model_config = ConfigDict(frozen=True)


class LessonSnapshot(BaseModel):
    """Read-only view of a lesson for rendering."""

    phase: Phase
    mode: LessonMode
    direction: Optional[Direction] = None
    prompt: Optional[Prompt] = None
    remaining: int = 0
    clock: str = "0:00"
    score: int = 0
    turns_answered: int = 0
    progress: float = 0.0
    paused: bool = False
    feedback: Feedback = Feedback.NONE
    missed: List[VocabularyEntry] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Rejection(str, Enum):
    """Why a lesson command was ignored."""

    INVALID_START = "invalid_start"
    EMPTY_INPUT = "empty_input"
    DUPLICATE_SUBMISSION = "duplicate_submission"
    PAUSED = "paused"
    NOT_ACTIVE = "not_active"
    NOT_SUMMARY = "not_summary"
    NOT_SETUP = "not_setup"
    NO_FEEDBACK = "no_feedback"


class CommandResult(BaseModel):
    """Outcome of a lesson command. Rejected commands leave the session untouched."""

    accepted: bool
    reason: Optional[Rejection] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: Rejection) -> "CommandResult":
        return cls(accepted=False, reason=reason)

    def __bool__(self) -> bool:
        return self.accepted
