"""Score keeping for lessons."""

from .core import Session, VocabularyEntry


def record_answer(session: Session, is_correct: bool, entry: VocabularyEntry) -> Session:
    """Counts an answered turn.

    A missed entry is added to the review list only the first time its word is
    missed, so the list keeps the order of first misses.
    """
    session.turns_answered += 1
    if is_correct:
        session.score += 1
    elif all(missed.word != entry.word for missed in session.missed):
        session.missed.append(entry)
    return session
