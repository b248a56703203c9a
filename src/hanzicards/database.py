"""Deck storage for saved flashcards."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import duckdb

from .core import VocabularyEntry
from .validator import strip_tone_marks

logger = logging.getLogger(__name__)

SORT_MODES = ("added", "hsk", "alphabetical")
HSK_LEVELS = ("1", "2", "3", "4", "5", "6", "unknown")

_COLUMNS = "word, pinyin, translation, hsk_level, example_sentence, notes, date_added"


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _row_to_entry(row: tuple) -> VocabularyEntry:
    return VocabularyEntry(
        word=row[0],
        pinyin=row[1],
        translation=row[2],
        hsk_level=row[3],
        example_sentence=row[4],
        notes=row[5],
        date_added=row[6],
    )


class DeckDatabase:
    """Stores the learner's saved flashcards in DuckDB.

    Cards are keyed by word: saving a word that is already in the deck is a
    no-op. This store is read before a lesson starts; the lesson engine never
    touches it.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Opens the deck database.

        Args:
            db_path: Optional path to a DuckDB file. If None, an in-memory database is used.
        """
        self.db_path = db_path or ":memory:"
        self.connection = duckdb.connect(self.db_path)
        self._create_tables()

    def _create_tables(self) -> None:
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS cards (
                word VARCHAR PRIMARY KEY,
                pinyin VARCHAR NOT NULL,
                translation VARCHAR NOT NULL,
                hsk_level VARCHAR NOT NULL DEFAULT 'unknown',
                example_sentence VARCHAR NOT NULL DEFAULT '',
                notes VARCHAR NOT NULL DEFAULT '',
                date_added TIMESTAMP NOT NULL
            )
        """
        )

    def has_card(self, word: str) -> bool:
        result = self.connection.execute(
            "SELECT 1 FROM cards WHERE word = ?", (word,)
        ).fetchone()
        return result is not None

    def save_card(self, entry: VocabularyEntry) -> bool:
        """Saves a card unless its word is already in the deck.

        Args:
            entry: The card to save. `date_added` is set to now when missing.

        Returns:
            True if the card was added, False if the word was already saved.
        """
        if self.has_card(entry.word):
            logger.debug("Card for %s already saved", entry.word)
            return False

        date_added = _to_naive_utc(entry.date_added) or datetime.now(timezone.utc).replace(
            tzinfo=None
        )
        self.connection.execute(
            f"""
            INSERT INTO cards ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
            (
                entry.word,
                entry.pinyin,
                entry.translation,
                entry.hsk_level,
                entry.example_sentence,
                entry.notes,
                date_added,
            ),
        )
        logger.info("Saved card for %s", entry.word)
        return True

    def save_cards(self, entries: Iterable[VocabularyEntry]) -> int:
        """Saves every card whose word is not in the deck yet.

        Returns:
            The number of cards added.
        """
        return sum(1 for entry in entries if self.save_card(entry))

    def get_card(self, word: str) -> Optional[VocabularyEntry]:
        row = self.connection.execute(
            f"SELECT {_COLUMNS} FROM cards WHERE word = ?", (word,)
        ).fetchone()
        return _row_to_entry(row) if row else None

    def delete_card(self, word: str) -> bool:
        if not self.has_card(word):
            return False
        self.connection.execute("DELETE FROM cards WHERE word = ?", (word,))
        return True

    def get_cards(self) -> List[VocabularyEntry]:
        """Returns every saved card in the order it was added."""
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM cards ORDER BY date_added, word"
        ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def list_cards(
        self,
        sort: str = "added",
        hsk_level: Optional[str] = None,
        added_on: Optional[date] = None,
    ) -> List[VocabularyEntry]:
        """Returns saved cards filtered and sorted for browsing.

        Args:
            sort: "added" (newest first), "hsk" (HSK 1 to 6, unknown last) or
                "alphabetical" (by pinyin, ignoring tone marks).
            hsk_level: Only return cards of this HSK level.
            added_on: Only return cards saved on this day.

        Returns:
            The matching cards.

        Raises:
            ValueError: If `sort` is not a known sort mode.
        """
        if sort not in SORT_MODES:
            raise ValueError(f"Unknown sort mode: {sort}")

        query = f"SELECT {_COLUMNS} FROM cards"
        conditions = []
        params: List[Any] = []
        if hsk_level is not None:
            conditions.append("hsk_level = ?")
            params.append(hsk_level)
        if added_on is not None:
            conditions.append("CAST(date_added AS DATE) = ?")
            params.append(added_on)
        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        if sort == "added":
            query += " ORDER BY date_added DESC, word"
        elif sort == "hsk":
            query += " ORDER BY COALESCE(TRY_CAST(hsk_level AS INTEGER), 7), date_added, word"

        cards = [_row_to_entry(row) for row in self.connection.execute(query, params).fetchall()]
        if sort == "alphabetical":
            cards.sort(key=lambda card: (strip_tone_marks(card.pinyin).lower(), card.pinyin))
        return cards

    def get_hsk_levels(self) -> List[str]:
        """Returns the distinct HSK levels present in the deck."""
        rows = self.connection.execute(
            "SELECT DISTINCT hsk_level FROM cards ORDER BY hsk_level"
        ).fetchall()
        return [row[0] for row in rows]

    def get_deck_stats(self) -> Dict[str, Any]:
        """Returns card counts for the deck.

        Returns:
            A dictionary containing:
            - "total_cards": Number of saved cards.
            - "by_level": Count per HSK level, for every level in `HSK_LEVELS`.
        """
        total_cards = self.connection.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
        rows = self.connection.execute(
            "SELECT hsk_level, COUNT(*) FROM cards GROUP BY hsk_level"
        ).fetchall()

        by_level = {level: 0 for level in HSK_LEVELS}
        for level, count in rows:
            key = level.lower() if level.lower() in by_level else "unknown"
            by_level[key] += count

        return {"total_cards": total_cards, "by_level": by_level}

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> "DeckDatabase":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
