"""Command-line interface for hanzicards."""

import argparse
import logging
import mimetypes
import os
import sys
import time
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from .ai import AIServiceFactory, FlashcardGenerationError, ImagePart, search_deck
from .config import get_api_key, load_settings
from .core import Feedback, LessonMode, Phase, VocabularyEntry
from .database import SORT_MODES, DeckDatabase
from .lesson import LessonController

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "hanzicards.duckdb"

MODE_LABELS = {
    LessonMode.HANZI_TO_PINYIN: "Hanzi -> Pinyin",
    LessonMode.PINYIN_TO_HANZI: "Pinyin -> Hanzi",
    LessonMode.TRANSLATION_TO_HANZI: "Translation -> Hanzi",
    LessonMode.MIXED: "Mixed",
}

PAUSE_COMMANDS = {":p", ":pause"}
QUIT_COMMANDS = {":q", ":quit", ":exit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="hanzicards: generate Chinese flashcards and drill them in timed lessons"
    )
    parser.add_argument(
        "--db",
        default=os.getenv("HANZICARDS_DB", DEFAULT_DB_PATH),
        help="Path to the deck database",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show info logs")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser("generate", help="Generate flashcards from text")
    generate_parser.add_argument("text", nargs="?", default="", help="Chinese text to analyze")
    generate_parser.add_argument("--image", help="Image containing Chinese text")
    generate_parser.add_argument(
        "--ai-service",
        choices=AIServiceFactory.get_available_services(),
        default="gemini",
        help="AI service to use",
    )
    generate_parser.add_argument("--api-key", help="API key for AI service")
    generate_parser.add_argument("--language", default="English", help="Translation language")
    generate_parser.add_argument("--save", action="store_true", help="Save new cards to the deck")

    add_parser = subparsers.add_parser("add", help="Add a card by hand")
    add_parser.add_argument("word", help="Chinese word")
    add_parser.add_argument("pinyin", help="Pinyin with tone marks")
    add_parser.add_argument("translation", help="Translation")
    add_parser.add_argument("--hsk", default="unknown", help="HSK level (1-6)")
    add_parser.add_argument("--example", default="", help="Example sentence")
    add_parser.add_argument("--notes", default="", help="Notes")

    list_parser = subparsers.add_parser("list", help="List saved cards")
    list_parser.add_argument("--sort", choices=SORT_MODES, default="added")
    list_parser.add_argument("--hsk", help="Only show this HSK level")
    list_parser.add_argument("--date", type=date.fromisoformat, help="Only cards added on YYYY-MM-DD")

    subparsers.add_parser("stats", help="Show deck statistics")

    search_parser = subparsers.add_parser("search", help="AI-powered fuzzy search of the deck")
    search_parser.add_argument("query", help="What you remember of the word")
    search_parser.add_argument(
        "--ai-service",
        choices=AIServiceFactory.get_available_services(),
        default="gemini",
    )
    search_parser.add_argument("--api-key", help="API key for AI service")

    lesson_parser = subparsers.add_parser("lesson", help="Start a timed practice lesson")
    lesson_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in LessonMode],
        default=LessonMode.HANZI_TO_PINYIN.value,
    )
    lesson_parser.add_argument("--duration", type=int, help="Lesson length in seconds")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    db = DeckDatabase(args.db)
    try:
        if args.command == "generate":
            generate_cards(db, args.text, args.image, args.ai_service, args.api_key, args.language, args.save)
        elif args.command == "add":
            add_card(db, args.word, args.pinyin, args.translation, args.hsk, args.example, args.notes)
        elif args.command == "list":
            list_cards(db, args.sort, args.hsk, args.date)
        elif args.command == "stats":
            show_stats(db)
        elif args.command == "search":
            search_cards(db, args.query, args.ai_service, args.api_key)
        elif args.command == "lesson":
            run_lesson(db, LessonMode(args.mode), args.duration)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        db.close()


def _resolve_api_key(service_type: str, api_key: Optional[str]) -> Optional[str]:
    api_key = api_key or get_api_key(service_type)
    if not api_key:
        print(f"Error: No API key provided for {service_type}")
        print(f"Set {service_type.upper()}_API_KEY environment variable or use --api-key")
    return api_key


def format_card(card: VocabularyEntry) -> str:
    level = "N/A" if card.hsk_level.lower() == "unknown" else f"HSK {card.hsk_level}"
    line = f"{card.word}  {card.pinyin}  {card.translation}  [{level}]"
    if card.example_sentence:
        line += f"\n    {card.example_sentence}"
    if card.notes:
        line += f"\n    {card.notes}"
    return line


def generate_cards(
    db: DeckDatabase,
    text: str,
    image_path: Optional[str],
    ai_service_type: str,
    api_key: Optional[str],
    language: str,
    save: bool,
) -> None:
    """Generate flashcards with an AI service and optionally save them."""
    api_key = _resolve_api_key(ai_service_type, api_key)
    if not api_key:
        return

    image = None
    if image_path:
        mime_type = mimetypes.guess_type(image_path)[0] or "image/png"
        image = ImagePart(mime_type=mime_type, data=Path(image_path).read_bytes())

    service = AIServiceFactory.create_service(ai_service_type, language=language)
    try:
        cards = service.generate_flashcards(text, api_key, image=image)
    except (ValueError, FlashcardGenerationError) as e:
        print(f"Error: {e}")
        return

    print(f"Generated {len(cards)} flashcards:")
    for card in cards:
        print(format_card(card))

    if save:
        added = db.save_cards(cards)
        print(f"Saved {added} new cards to the deck")


def add_card(
    db: DeckDatabase,
    word: str,
    pinyin: str,
    translation: str,
    hsk_level: str,
    example_sentence: str,
    notes: str,
) -> None:
    """Add a card to the deck."""
    card = VocabularyEntry(
        word=word.strip(),
        pinyin=pinyin.strip(),
        translation=translation.strip(),
        hsk_level=hsk_level,
        example_sentence=example_sentence,
        notes=notes,
    )
    if db.save_card(card):
        print(f"Added card for word: {card.word}")
    else:
        print(f"{card.word} is already in your deck")


def list_cards(db: DeckDatabase, sort: str, hsk_level: Optional[str], added_on: Optional[date]) -> None:
    cards = db.list_cards(sort=sort, hsk_level=hsk_level, added_on=added_on)
    if not cards:
        print("No cards found.")
        return
    for card in cards:
        print(format_card(card))


def show_stats(db: DeckDatabase) -> None:
    """Show deck statistics."""
    stats = db.get_deck_stats()

    print("=== Deck Statistics ===")
    print(f"Total cards: {stats['total_cards']}")
    for level, count in stats["by_level"].items():
        label = "N/A" if level == "unknown" else f"HSK {level}"
        print(f"  {label}: {count}")


def search_cards(db: DeckDatabase, query: str, ai_service_type: str, api_key: Optional[str]) -> None:
    api_key = _resolve_api_key(ai_service_type, api_key)
    if not api_key:
        return

    service = AIServiceFactory.create_service(ai_service_type)
    try:
        results = search_deck(query, db.get_cards(), service, api_key)
    except FlashcardGenerationError as e:
        print(f"AI search failed: {e}")
        return

    print(f"Found {len(results)} matching cards for '{query}'")
    for card in results:
        print(format_card(card))


def render_turn(controller: LessonController) -> None:
    snapshot = controller.snapshot()
    print(
        f"\nScore: {snapshot.score}  Time: {snapshot.clock}  "
        f"Progress: {snapshot.progress:.0f}%"
    )
    if snapshot.prompt is not None:
        print(f"{snapshot.prompt.answer_type}? {snapshot.prompt.question}")


def render_feedback(controller: LessonController) -> None:
    snapshot = controller.snapshot()
    if snapshot.feedback is Feedback.CORRECT:
        print("Correct!")
    elif snapshot.feedback is Feedback.INCORRECT and snapshot.prompt is not None:
        print(f"Correct answer: {snapshot.prompt.expected_hanzi} ({snapshot.prompt.expected_pinyin})")


def render_summary(controller: LessonController) -> None:
    snapshot = controller.snapshot()
    print("\n=== Lesson Complete! ===")
    print(f"Your score: {snapshot.score} ({snapshot.turns_answered} answered)")
    if snapshot.missed:
        print("Words to review:")
        for card in snapshot.missed:
            print(f"  {card.word}  {card.pinyin}")


def play_lesson(
    controller: LessonController,
    read: Callable[[str], str] = input,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Runs the active lesson in the terminal until time runs out or the learner quits.

    Wall-clock time spent between prompts is fed to the controller, so the
    countdown and the auto-advance keep running while the learner types.
    """
    last = clock()

    def catch_up() -> None:
        nonlocal last
        now = clock()
        controller.advance_clock(now - last)
        last = now

    while controller.phase is Phase.ACTIVE:
        render_turn(controller)
        answer = read("> ").strip()
        catch_up()
        if controller.phase is not Phase.ACTIVE:
            print("Time is up!")
            break

        if answer in QUIT_COMMANDS:
            controller.exit()
            return
        if answer in PAUSE_COMMANDS:
            controller.pause()
            read("Paused. Press Enter to resume.")
            controller.resume()
            last = clock()
            continue

        if controller.submit_answer(answer):
            render_feedback(controller)
            sleep(controller.settings.feedback_delay)
            catch_up()


def choose_mode(read: Callable[[str], str] = input) -> Optional[LessonMode]:
    modes = list(LessonMode)
    for i, mode in enumerate(modes, 1):
        print(f"  {i}. {MODE_LABELS[mode]}")
    choice = read("Choose a mode: ").strip()
    if choice.isdigit() and 1 <= int(choice) <= len(modes):
        return modes[int(choice) - 1]
    return None


def run_lesson(db: DeckDatabase, mode: LessonMode, duration: Optional[int]) -> None:
    """Start a timed lesson over the saved deck."""
    try:
        settings = load_settings({"lesson_duration": duration})
    except ValidationError as e:
        print(f"Error: invalid lesson settings: {e}")
        return
    controller = LessonController(settings)

    if not controller.start(db.get_cards(), mode):
        print("Your deck is empty! Add some flashcards before you can start a lesson.")
        return

    print(f"{MODE_LABELS[mode]} lesson, {settings.lesson_duration} seconds.")
    print("Type ':pause' to pause and ':quit' to leave.")
    try:
        while True:
            play_lesson(controller)
            if controller.phase is not Phase.SUMMARY:
                return
            render_summary(controller)
            choice = input("[r]estart, choose another [m]ode, [q]uit: ").strip().lower()
            if choice == "r":
                controller.restart()
            elif choice == "m":
                controller.choose_different_mode()
                new_mode = choose_mode()
                if new_mode is None:
                    return
                controller.start(db.get_cards(), new_mode)
            else:
                return
    except (EOFError, KeyboardInterrupt):
        controller.exit()
        print()


if __name__ == "__main__":
    main()
