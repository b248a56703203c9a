"""Unit tests for AI module."""

import json
from unittest.mock import MagicMock, patch

import pytest

from hanzicards.ai import (
    AIServiceFactory,
    FLASHCARD_FIELDS,
    FlashcardGenerationError,
    GeminiService,
    ImagePart,
    OpenAIService,
    parse_flashcards,
    parse_word_list,
    search_deck,
)
from hanzicards.core import VocabularyEntry

FLASHCARDS = [
    {
        "word": "学生",
        "pinyin": "xué shēng",
        "translation": "student",
        "hsk_level": "1",
        "example_sentence": "我是一个学生。",
        "notes": "noun",
    },
    {
        "word": "苹果",
        "pinyin": "píng guǒ",
        "translation": "apple",
        "hsk_level": "1",
        "example_sentence": "商店里没有苹果了。",
        "notes": "",
    },
]


class TestAIServiceFactory:
    def test_get_available_services(self) -> None:
        services = AIServiceFactory.get_available_services()
        assert "openai" in services
        assert "gemini" in services

    def test_create_openai_service(self) -> None:
        service = AIServiceFactory.create_service("openai")
        assert isinstance(service, OpenAIService)

    def test_create_gemini_service(self) -> None:
        service = AIServiceFactory.create_service("Gemini", language="Russian")
        assert isinstance(service, GeminiService)
        assert service.language == "Russian"

    def test_create_invalid_service(self) -> None:
        with pytest.raises(ValueError):
            AIServiceFactory.create_service("invalid")


class TestParsing:
    def test_parse_array(self) -> None:
        cards = parse_flashcards(json.dumps(FLASHCARDS, ensure_ascii=False))
        assert [c.word for c in cards] == ["学生", "苹果"]
        assert cards[0].notes == "noun"

    def test_parse_object_in_code_fence(self) -> None:
        text = "```json\n" + json.dumps({"flashcards": FLASHCARDS}, ensure_ascii=False) + "\n```"
        assert len(parse_flashcards(text)) == 2

    def test_repeated_words_keep_first(self) -> None:
        repeated = FLASHCARDS + [dict(FLASHCARDS[0], translation="pupil")]
        cards = parse_flashcards(json.dumps(repeated, ensure_ascii=False))
        assert len(cards) == 2
        assert cards[0].translation == "student"

    def test_numeric_hsk_level_is_kept(self) -> None:
        numbered = [dict(FLASHCARDS[0], hsk_level=1), dict(FLASHCARDS[1], hsk_level=None)]
        cards = parse_flashcards(json.dumps({"flashcards": numbered}, ensure_ascii=False))
        assert [c.hsk_level for c in cards] == ["1", "unknown"]

    @pytest.mark.parametrize("text", ["", "   ", "not json", '{"cards": []}', '[{"word": "学生"}]'])
    def test_bad_responses(self, text: str) -> None:
        with pytest.raises(FlashcardGenerationError):
            parse_flashcards(text)

    def test_parse_word_list(self) -> None:
        assert parse_word_list('{"words": ["学生"]}') == ["学生"]
        assert parse_word_list('["学生", "苹果"]') == ["学生", "苹果"]


class TestGeminiService:
    @patch("hanzicards.ai.genai")
    def test_generate_flashcards(self, mock_genai: MagicMock) -> None:
        model = mock_genai.GenerativeModel.return_value
        model.generate_content.return_value.text = json.dumps(FLASHCARDS, ensure_ascii=False)

        service = GeminiService()
        image = ImagePart(mime_type="image/png", data=b"\x89PNG")
        cards = service.generate_flashcards("我是一个学生。", "key", image=image)

        assert [c.word for c in cards] == ["学生", "苹果"]
        mock_genai.configure.assert_called_once_with(api_key="key")
        contents = model.generate_content.call_args[0][0]
        assert contents[0] == {"mime_type": "image/png", "data": b"\x89PNG"}
        assert contents[1] == "我是一个学生。"

    @patch("hanzicards.ai.genai")
    def test_flashcard_fields_are_pinned_to_strings(self, mock_genai: MagicMock) -> None:
        mock_genai.GenerativeModel.return_value.generate_content.return_value.text = "[]"

        GeminiService().generate_flashcards("我是学生", "key")

        config = mock_genai.GenerativeModel.return_value.generate_content.call_args.kwargs[
            "generation_config"
        ]
        assert config["response_mime_type"] == "application/json"
        assert config["response_schema"] is mock_genai.protos.Schema.return_value
        field_types = {
            call.kwargs["type"]
            for call in mock_genai.protos.Schema.call_args_list
            if "description" in call.kwargs
        }
        assert field_types == {mock_genai.protos.Type.STRING}
        assert mock_genai.protos.Schema.call_count == len(FLASHCARD_FIELDS) + 3

    @patch("hanzicards.ai.genai")
    def test_all_models_failing(self, mock_genai: MagicMock) -> None:
        mock_genai.GenerativeModel.return_value.generate_content.side_effect = RuntimeError("quota")

        with pytest.raises(FlashcardGenerationError):
            GeminiService().generate_flashcards("我是学生", "key")
        assert mock_genai.GenerativeModel.call_count == len(GeminiService.preferred_models)

    def test_needs_text_or_image(self) -> None:
        with pytest.raises(ValueError):
            GeminiService().generate_flashcards("  ", "key")

    @patch("hanzicards.ai.genai")
    def test_find_similar_words(self, mock_genai: MagicMock) -> None:
        mock_genai.GenerativeModel.return_value.generate_content.return_value.text = '{"words": ["学生"]}'
        entries = parse_flashcards(json.dumps(FLASHCARDS, ensure_ascii=False))

        assert GeminiService().find_similar_words("xuesheng", entries, "key") == ["学生"]
        assert GeminiService().find_similar_words("xuesheng", [], "key") == []


class TestOpenAIService:
    @patch("hanzicards.ai.openai")
    def test_generate_flashcards(self, mock_openai: MagicMock) -> None:
        client = mock_openai.OpenAI.return_value
        message = MagicMock(content=json.dumps({"flashcards": FLASHCARDS}, ensure_ascii=False))
        client.chat.completions.create.return_value.choices = [MagicMock(message=message)]

        cards = OpenAIService().generate_flashcards("我是一个学生。", "key")

        assert len(cards) == 2
        mock_openai.OpenAI.assert_called_once_with(api_key="key")
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}


class TestSearchDeck:
    def test_keeps_deck_order(self) -> None:
        entries = [
            VocabularyEntry(word="学生", pinyin="xué shēng", translation="student"),
            VocabularyEntry(word="苹果", pinyin="píng guǒ", translation="apple"),
        ]
        service = MagicMock()
        service.find_similar_words.return_value = ["苹果", "学生", "不在"]

        results = search_deck("pingguo", entries, service, "key")
        assert [e.word for e in results] == ["学生", "苹果"]

    def test_empty_query_skips_service(self) -> None:
        service = MagicMock()
        assert search_deck("  ", [], service, "key") == []
        service.find_similar_words.assert_not_called()
