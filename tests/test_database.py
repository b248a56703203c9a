"""Unit tests for database module."""

from datetime import date, datetime

import pytest

from hanzicards.core import VocabularyEntry
from hanzicards.database import DeckDatabase


def make_card(word: str, pinyin: str, hsk_level: str = "1", added: datetime = None) -> VocabularyEntry:
    return VocabularyEntry(
        word=word,
        pinyin=pinyin,
        translation=f"meaning of {word}",
        hsk_level=hsk_level,
        date_added=added,
    )


@pytest.fixture
def db():
    database = DeckDatabase()
    yield database
    database.close()


class TestDeckDatabase:
    def test_database_initialization(self) -> None:
        db = DeckDatabase()
        assert db is not None
        db.close()

    def test_save_and_get_card(self, db: DeckDatabase) -> None:
        card = VocabularyEntry(
            word="你好",
            pinyin="nǐ hǎo",
            translation="hello",
            hsk_level="1",
            example_sentence="你好，我是小明。",
            notes="greeting",
        )
        assert db.save_card(card) is True

        retrieved = db.get_card("你好")
        assert retrieved is not None
        assert retrieved.pinyin == "nǐ hǎo"
        assert retrieved.example_sentence == "你好，我是小明。"
        assert retrieved.notes == "greeting"
        assert retrieved.date_added is not None

    def test_missing_card(self, db: DeckDatabase) -> None:
        assert db.get_card("没有") is None

    def test_same_word_is_saved_once(self, db: DeckDatabase) -> None:
        assert db.save_card(make_card("学生", "xué shēng")) is True
        assert db.save_card(make_card("学生", "xuésheng", hsk_level="2")) is False

        cards = db.get_cards()
        assert len(cards) == 1
        assert cards[0].pinyin == "xué shēng"

    def test_save_cards_skips_known_words(self, db: DeckDatabase) -> None:
        db.save_card(make_card("你好", "nǐ hǎo"))
        added = db.save_cards(
            [make_card("你好", "nǐ hǎo"), make_card("谢谢", "xiè xie"), make_card("苹果", "píng guǒ")]
        )
        assert added == 2
        assert len(db.get_cards()) == 3

    def test_delete_card(self, db: DeckDatabase) -> None:
        db.save_card(make_card("你好", "nǐ hǎo"))
        assert db.delete_card("你好") is True
        assert db.delete_card("你好") is False
        assert db.get_cards() == []

    def test_list_newest_first(self, db: DeckDatabase) -> None:
        db.save_card(make_card("一", "yī", added=datetime(2024, 1, 1, 9)))
        db.save_card(make_card("二", "èr", added=datetime(2024, 1, 3, 9)))
        db.save_card(make_card("三", "sān", added=datetime(2024, 1, 2, 9)))

        assert [c.word for c in db.list_cards(sort="added")] == ["二", "三", "一"]

    def test_list_by_hsk_level(self, db: DeckDatabase) -> None:
        db.save_card(make_card("经济", "jīng jì", hsk_level="4", added=datetime(2024, 1, 1)))
        db.save_card(make_card("网红", "wǎng hóng", hsk_level="unknown", added=datetime(2024, 1, 2)))
        db.save_card(make_card("你好", "nǐ hǎo", hsk_level="1", added=datetime(2024, 1, 3)))

        assert [c.word for c in db.list_cards(sort="hsk")] == ["你好", "经济", "网红"]

    def test_list_alphabetical_ignores_tone_marks(self, db: DeckDatabase) -> None:
        db.save_card(make_card("苹果", "píng guǒ"))
        db.save_card(make_card("爱", "ài"))
        db.save_card(make_card("你好", "nǐ hǎo"))

        assert [c.word for c in db.list_cards(sort="alphabetical")] == ["爱", "你好", "苹果"]

    def test_filter_by_level_and_date(self, db: DeckDatabase) -> None:
        db.save_card(make_card("一", "yī", hsk_level="1", added=datetime(2024, 5, 1, 10)))
        db.save_card(make_card("经济", "jīng jì", hsk_level="4", added=datetime(2024, 5, 1, 18)))
        db.save_card(make_card("二", "èr", hsk_level="1", added=datetime(2024, 5, 2, 10)))

        assert [c.word for c in db.list_cards(hsk_level="1", sort="hsk")] == ["一", "二"]
        assert {c.word for c in db.list_cards(added_on=date(2024, 5, 1))} == {"一", "经济"}
        assert [c.word for c in db.list_cards(hsk_level="1", added_on=date(2024, 5, 2))] == ["二"]

    def test_unknown_sort_mode(self, db: DeckDatabase) -> None:
        with pytest.raises(ValueError):
            db.list_cards(sort="random")

    def test_deck_stats(self, db: DeckDatabase) -> None:
        db.save_card(make_card("一", "yī", hsk_level="1"))
        db.save_card(make_card("二", "èr", hsk_level="1"))
        db.save_card(make_card("网红", "wǎng hóng", hsk_level="unknown"))

        stats = db.get_deck_stats()
        assert stats["total_cards"] == 3
        assert stats["by_level"]["1"] == 2
        assert stats["by_level"]["unknown"] == 1
        assert stats["by_level"]["6"] == 0

    def test_hsk_levels(self, db: DeckDatabase) -> None:
        db.save_card(make_card("经济", "jīng jì", hsk_level="4"))
        db.save_card(make_card("一", "yī", hsk_level="1"))
        assert db.get_hsk_levels() == ["1", "4"]

    def test_context_manager(self) -> None:
        with DeckDatabase() as db:
            db.save_card(make_card("一", "yī"))
            assert len(db.get_cards()) == 1
