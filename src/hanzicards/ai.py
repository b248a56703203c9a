"""AI service module for generating flashcards from Chinese text and images."""

import base64
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai
import openai
from pydantic import BaseModel, ConfigDict, ValidationError

from .core import VocabularyEntry

logger = logging.getLogger(__name__)

FLASHCARD_INSTRUCTION = """You are an intelligent Chinese language assistant.
Analyze the provided Chinese content and generate flashcards. If an image is provided, extract the Chinese text from the image as the primary source. The provided text can be used as context or additional notes.

Perform the following steps on the identified Chinese text:
1. Extract all unique Chinese vocabulary words.
2. For each word, determine its HSK level (1-6). If it is not in the standard HSK lists, label it as "unknown".
3. Find an example sentence from the provided text that contains the word. Check it for grammatical and logical errors and correct it if necessary.
4. Generate a flashcard for each word with its pinyin (with tone marks), {language} translation, HSK level, the corrected example sentence, and any relevant notes (part of speech, synonyms, antonyms), or an empty string.

Return only a JSON object of the form {{"flashcards": [...]}} where each flashcard has the keys
"word", "pinyin", "translation", "hsk_level", "example_sentence" and "notes"."""


class FlashcardGenerationError(Exception):
    """Raised when an AI service cannot produce flashcards."""


class ImagePart(BaseModel):
    """An uploaded image handed to the AI service alongside the text."""

    mime_type: str
    data: bytes

    model_config = ConfigDict(frozen=True)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _load_json(text: str) -> Any:
    cleaned = _strip_code_fence(text or "")
    if not cleaned:
        raise FlashcardGenerationError("AI service returned an empty response.")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise FlashcardGenerationError(f"AI service returned invalid JSON: {e}") from e


def parse_flashcards(json_text: str) -> List[VocabularyEntry]:
    """Parses an AI response into vocabulary entries.

    Accepts either a JSON array of flashcards or an object holding one under
    "flashcards". Repeated words keep their first occurrence.

    Raises:
        FlashcardGenerationError: If the response is empty or malformed.
    """
    data = _load_json(json_text)
    if isinstance(data, dict):
        data = data.get("flashcards")
    if not isinstance(data, list):
        raise FlashcardGenerationError("AI response does not contain a flashcard list.")

    entries: List[VocabularyEntry] = []
    seen = set()
    for item in data:
        try:
            entry = VocabularyEntry.model_validate(item)
        except ValidationError as e:
            raise FlashcardGenerationError(f"Malformed flashcard in AI response: {e}") from e
        if entry.word not in seen:
            seen.add(entry.word)
            entries.append(entry)
    return entries


def parse_word_list(json_text: str) -> List[str]:
    """Parses a JSON array of words, or an object holding one under "words"."""
    data = _load_json(json_text)
    if isinstance(data, dict):
        data = data.get("words")
    if not isinstance(data, list):
        raise FlashcardGenerationError("AI response does not contain a word list.")
    return [str(word) for word in data]


def _create_search_prompt(query: str, entries: Sequence[VocabularyEntry]) -> str:
    word_list = json.dumps(
        [{"word": e.word, "pinyin": e.pinyin} for e in entries], ensure_ascii=False
    )
    return f"""From the following list of Chinese words, identify the ones that are the closest match to the user's search query. The user may misremember the pinyin or the exact characters.

Word list (JSON format):
{word_list}

User's search query: "{query}"

Return only a JSON object of the form {{"words": [...]}} holding the matching Chinese words from the list."""


FLASHCARD_FIELDS = {
    "word": "The Chinese vocabulary word.",
    "pinyin": "The Hanyu Pinyin for the word, with tone marks.",
    "translation": "The translation of the word.",
    "hsk_level": "The HSK level (1-6) or 'unknown' if not in the HSK lists.",
    "example_sentence": "A corrected example sentence from the text containing the word.",
    "notes": "Part of speech, synonyms or antonyms. Can be an empty string.",
}


def _flashcard_schema() -> "genai.protos.Schema":
    """Response schema that pins every flashcard field to a string."""
    card = genai.protos.Schema(
        type=genai.protos.Type.OBJECT,
        properties={
            name: genai.protos.Schema(type=genai.protos.Type.STRING, description=description)
            for name, description in FLASHCARD_FIELDS.items()
        },
        required=list(FLASHCARD_FIELDS),
    )
    return genai.protos.Schema(
        type=genai.protos.Type.OBJECT,
        properties={
            "flashcards": genai.protos.Schema(type=genai.protos.Type.ARRAY, items=card)
        },
        required=["flashcards"],
    )


def _check_generation_input(text: str, image: Optional[ImagePart]) -> None:
    if not text.strip() and image is None:
        raise ValueError("Please provide some Chinese text or an image to analyze.")


class AIService(ABC):
    """Abstract base class for AI services."""

    def __init__(self, language: str = "English"):
        """Initializes the service.

        Args:
            language: Language of the translations on generated cards.
        """
        self.language = language

    @abstractmethod
    def generate_flashcards(
        self, text: str, api_key: str, image: Optional[ImagePart] = None
    ) -> List[VocabularyEntry]:
        """Generates flashcards for the Chinese words in `text` and `image`.

        Args:
            text: Chinese text, or context for the image.
            api_key: The API key for the AI service.
            image: Optional image whose Chinese text is the primary source.

        Returns:
            One flashcard per unique word.

        Raises:
            ValueError: If neither text nor an image is given.
            FlashcardGenerationError: If the service fails or answers nonsense.
        """

    @abstractmethod
    def find_similar_words(
        self, query: str, entries: Sequence[VocabularyEntry], api_key: str
    ) -> List[str]:
        """Returns the words of `entries` that best match a fuzzy `query`."""


class GeminiService(AIService):
    """Google Gemini API service for generating flashcards."""

    preferred_models = ["gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-1.5-flash"]

    def __init__(self, language: str = "English"):
        super().__init__(language)
        self.client: Optional[genai.GenerativeModel] = None

    def _generate(
        self,
        contents: Any,
        api_key: str,
        system_instruction: Optional[str] = None,
        response_schema: Any = None,
    ) -> str:
        genai.configure(api_key=api_key)
        generation_config: Dict[str, Any] = {"response_mime_type": "application/json"}
        if response_schema is not None:
            generation_config["response_schema"] = response_schema
        last_error: Optional[Exception] = None
        for model_name in self.preferred_models:
            try:
                logger.info("Attempting to generate content with Gemini model: %s", model_name)
                self.client = genai.GenerativeModel(
                    model_name, system_instruction=system_instruction
                )
                response = self.client.generate_content(
                    contents,
                    generation_config=generation_config,
                )
                return response.text
            except Exception as e:
                logger.warning("Error with Gemini model %s: %s", model_name, e)
                last_error = e
        raise FlashcardGenerationError("Failed to process text with Gemini API.") from last_error

    def generate_flashcards(
        self, text: str, api_key: str, image: Optional[ImagePart] = None
    ) -> List[VocabularyEntry]:
        _check_generation_input(text, image)
        contents: List[Any] = []
        if image is not None:
            contents.append({"mime_type": image.mime_type, "data": image.data})
        contents.append(text)

        response_text = self._generate(
            contents,
            api_key,
            FLASHCARD_INSTRUCTION.format(language=self.language),
            response_schema=_flashcard_schema(),
        )
        return parse_flashcards(response_text)

    def find_similar_words(
        self, query: str, entries: Sequence[VocabularyEntry], api_key: str
    ) -> List[str]:
        if not entries:
            return []
        response_text = self._generate(_create_search_prompt(query, entries), api_key)
        return parse_word_list(response_text)


class OpenAIService(AIService):
    """OpenAI API service for generating flashcards."""

    preferred_models = ["gpt-4o-mini", "gpt-4o"]

    def __init__(self, language: str = "English"):
        super().__init__(language)
        self.client: Optional[openai.OpenAI] = None

    def _generate(self, messages: List[dict], api_key: str) -> str:
        self.client = openai.OpenAI(api_key=api_key)
        last_error: Optional[Exception] = None
        for model_name in self.preferred_models:
            try:
                logger.info("Attempting to generate content with OpenAI model: %s", model_name)
                response = self.client.chat.completions.create(
                    model=model_name,
                    messages=messages,
                    response_format={"type": "json_object"},
                )
                return response.choices[0].message.content or ""
            except Exception as e:
                logger.warning("Error with OpenAI model %s: %s", model_name, e)
                last_error = e
        raise FlashcardGenerationError("Failed to process text with OpenAI API.") from last_error

    def generate_flashcards(
        self, text: str, api_key: str, image: Optional[ImagePart] = None
    ) -> List[VocabularyEntry]:
        _check_generation_input(text, image)
        content: List[dict] = []
        if image is not None:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{image.to_base64()}"},
                }
            )
        content.append({"type": "text", "text": text})

        messages = [
            {"role": "system", "content": FLASHCARD_INSTRUCTION.format(language=self.language)},
            {"role": "user", "content": content},
        ]
        return parse_flashcards(self._generate(messages, api_key))

    def find_similar_words(
        self, query: str, entries: Sequence[VocabularyEntry], api_key: str
    ) -> List[str]:
        if not entries:
            return []
        messages = [{"role": "user", "content": _create_search_prompt(query, entries)}]
        return parse_word_list(self._generate(messages, api_key))


def search_deck(
    query: str, entries: Sequence[VocabularyEntry], service: AIService, api_key: str
) -> List[VocabularyEntry]:
    """Runs a fuzzy AI search over the deck.

    Returns:
        The entries whose word the service picked, in deck order. An empty query
        returns nothing without calling the service.
    """
    if not query.strip() or not entries:
        return []
    matches = set(service.find_similar_words(query.strip(), entries, api_key))
    return [entry for entry in entries if entry.word in matches]


class AIServiceFactory:
    """Factory for creating AI service instances."""

    @staticmethod
    def create_service(service_type: str, language: str = "English") -> AIService:
        """Creates an instance of an AI service based on the specified type.

        Args:
            service_type: The type of AI service to create ("gemini" or "openai").
            language: Language of the translations on generated cards.

        Returns:
            An instance of a concrete AIService implementation.

        Raises:
            ValueError: If an unknown AI service type is provided.
        """
        if service_type.lower() == "gemini":
            return GeminiService(language)
        elif service_type.lower() == "openai":
            return OpenAIService(language)
        else:
            raise ValueError(f"Unknown AI service type: {service_type}")

    @staticmethod
    def get_available_services() -> List[str]:
        return ["gemini", "openai"]
