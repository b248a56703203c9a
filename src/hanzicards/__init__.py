"""hanzicards: timed recall lessons over AI-generated Chinese flashcards."""

__version__ = "0.1.0"

from .core import (
    CommandResult,
    Direction,
    Feedback,
    LessonMode,
    LessonSnapshot,
    Phase,
    Rejection,
    Session,
    VocabularyEntry,
)
from .config import LessonSettings, load_settings
from .lesson import LessonController
from .database import DeckDatabase
from .ai import AIService, AIServiceFactory, GeminiService, OpenAIService

__all__ = [
    "CommandResult",
    "Direction",
    "Feedback",
    "LessonMode",
    "LessonSnapshot",
    "Phase",
    "Rejection",
    "Session",
    "VocabularyEntry",
    "LessonSettings",
    "load_settings",
    "LessonController",
    "DeckDatabase",
    "AIService",
    "AIServiceFactory",
    "GeminiService",
    "OpenAIService",
]
