"""Turn selection: which entry comes next and in which direction."""

import random
from typing import List, Optional, Sequence, Tuple

from .core import DIRECTIONS, Direction, Feedback, LessonMode, Session, VocabularyEntry
from .shuffler import shuffle


class TurnSelector:
    """Picks entries and quiz directions for a lesson.

    Args:
        rng: Random source for shuffling and for mixed-mode directions.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    def draw_direction(self, mode: LessonMode) -> Direction:
        """Returns the fixed direction of `mode`, or a uniform draw for MIXED."""
        fixed = mode.fixed_direction()
        if fixed is not None:
            return fixed
        return self.rng.choice(DIRECTIONS)

    def initialize(
        self, deck: Sequence[VocabularyEntry], mode: LessonMode
    ) -> Tuple[List[VocabularyEntry], Direction]:
        """Shuffles the deck and picks the direction of the first turn."""
        return shuffle(deck, self.rng), self.draw_direction(mode)

    def advance(self, session: Session) -> Session:
        """Moves the session to the next turn.

        The index wraps around, so the same shuffled order repeats once the
        deck is exhausted. Feedback and the input buffer are cleared.
        """
        if session.deck:
            session.index = (session.index + 1) % len(session.deck)
        if session.mode is LessonMode.MIXED:
            session.direction = self.draw_direction(session.mode)
        session.feedback = Feedback.NONE
        session.user_input = ""
        return session
