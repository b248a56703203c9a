"""Unit tests for score tracking."""

from hanzicards.core import Session, VocabularyEntry
from hanzicards.tracker import record_answer

NI_HAO = VocabularyEntry(word="你好", pinyin="nǐ hǎo", translation="hello")
XIE_XIE = VocabularyEntry(word="谢谢", pinyin="xiè xie", translation="thanks")


class TestRecordAnswer:
    def test_correct_answer(self) -> None:
        session = record_answer(Session(), True, NI_HAO)
        assert session.turns_answered == 1
        assert session.score == 1
        assert session.missed == []

    def test_incorrect_answer_is_missed(self) -> None:
        session = record_answer(Session(), False, NI_HAO)
        assert session.turns_answered == 1
        assert session.score == 0
        assert session.missed == [NI_HAO]

    def test_missed_word_is_listed_once(self) -> None:
        session = Session()
        record_answer(session, False, NI_HAO)
        record_answer(session, False, XIE_XIE)
        record_answer(session, False, NI_HAO)
        assert [e.word for e in session.missed] == ["你好", "谢谢"]
        assert session.turns_answered == 3

    def test_same_word_from_another_entry_is_not_added(self) -> None:
        session = Session()
        record_answer(session, False, NI_HAO)
        record_answer(session, False, NI_HAO.model_copy(update={"notes": "greeting"}))
        assert len(session.missed) == 1

    def test_score_never_exceeds_turns(self) -> None:
        session = Session()
        for correct in [True, False, True, True, False]:
            record_answer(session, correct, NI_HAO)
            assert session.score <= session.turns_answered
        assert session.score == 3
