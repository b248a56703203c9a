"""Demo interface for hanzicards using Gradio."""

import mimetypes
import os
import time
from datetime import date
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

import gradio as gr

from .ai import AIServiceFactory, FlashcardGenerationError, ImagePart, search_deck
from .config import get_api_key, load_settings
from .core import Feedback, LessonMode, Phase, Rejection, VocabularyEntry
from .database import SORT_MODES, DeckDatabase
from .lesson import LessonController, format_clock

MODE_CHOICES = [
    ("Hanzi → Pinyin", LessonMode.HANZI_TO_PINYIN.value),
    ("Pinyin → Hanzi", LessonMode.PINYIN_TO_HANZI.value),
    ("Translation → Hanzi", LessonMode.TRANSLATION_TO_HANZI.value),
    ("Mixed Mode", LessonMode.MIXED.value),
]


def _format_cards(cards: List[VocabularyEntry]) -> str:
    lines = []
    for i, card in enumerate(cards, 1):
        level = "N/A" if card.hsk_level.lower() == "unknown" else f"HSK {card.hsk_level}"
        lines.append(f"{i}. {card.word} ({card.pinyin}): {card.translation} [{level}]")
        if card.example_sentence:
            lines.append(f"   {card.example_sentence}")
    return "\n".join(lines)


class HanziCardsDemo:
    """Backend of the Gradio interface.

    Every method returns plain strings so it can be wired straight to Gradio
    components. The lesson clock follows wall time: each `poll` feeds the
    time elapsed since the previous call to the lesson controller.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.db = DeckDatabase(db_path)
        self.settings = load_settings()
        self.controller = LessonController(self.settings)
        self.clock = clock
        self._last_poll = clock()
        self._shown_turn: Optional[Tuple[int, int, bool]] = None
        self.generated: List[VocabularyEntry] = []
        self.auto_save = False

        gemini_api_key = get_api_key("gemini")
        if gemini_api_key:
            self.api_key = gemini_api_key
            self.ai_service_type = "gemini"
        else:
            self.api_key = get_api_key("openai") or ""
            self.ai_service_type = "openai"

    def set_api_key(self, api_key: str, service_type: str) -> str:
        self.api_key = api_key.strip()
        self.ai_service_type = service_type

        if not self.api_key:
            return "API key cleared."

        return f"API key set for {service_type} service."

    def set_auto_save(self, enabled: bool) -> str:
        self.auto_save = bool(enabled)
        return "Auto-save on." if self.auto_save else "Auto-save off."

    def generate(self, text: str, image_path: Optional[str] = None) -> str:
        """Generates flashcards from text and an optional image file."""
        if not self.api_key:
            return "Please set your API key first."

        image = None
        if image_path:
            mime_type = mimetypes.guess_type(image_path)[0] or "image/png"
            image = ImagePart(mime_type=mime_type, data=Path(image_path).read_bytes())

        try:
            service = AIServiceFactory.create_service(self.ai_service_type)
            self.generated = service.generate_flashcards(text or "", self.api_key, image=image)
        except (ValueError, FlashcardGenerationError) as e:
            self.generated = []
            return f"Failed to generate flashcards: {e}"

        result = f"Generated {len(self.generated)} flashcards:\n\n"
        result += _format_cards(self.generated)
        if self.auto_save:
            added = self.db.save_cards(self.generated)
            result += f"\n\nAuto-saved {added} new cards."
        return result

    def save_generated(self) -> str:
        if not self.generated:
            return "Nothing to save. Generate some flashcards first."
        added = self.db.save_cards(self.generated)
        return f"Saved {added} new cards to your deck."

    def get_deck(self, sort: str = "added", hsk_level: str = "all", added_on: str = "") -> str:
        try:
            day = date.fromisoformat(added_on.strip()) if added_on and added_on.strip() else None
        except ValueError:
            return "Please enter the date as YYYY-MM-DD."

        cards = self.db.list_cards(
            sort=sort,
            hsk_level=None if hsk_level in ("", "all") else hsk_level,
            added_on=day,
        )
        if not cards:
            return "Your deck is empty!"
        return _format_cards(cards)

    def get_stats(self) -> str:
        stats = self.db.get_deck_stats()

        result = "=== Deck Statistics ===\n"
        result += f"Total cards: {stats['total_cards']}\n"
        for level, count in stats["by_level"].items():
            label = "N/A" if level == "unknown" else f"HSK {level}"
            result += f"{label}: {count}\n"
        return result.rstrip()

    def search(self, query: str) -> str:
        if not query.strip():
            return "Please enter a search query."
        if not self.api_key:
            return "Please set your API key first."
        try:
            service = AIServiceFactory.create_service(self.ai_service_type)
            results = search_deck(query, self.db.get_cards(), service, self.api_key)
        except FlashcardGenerationError:
            return "AI search failed. Please try again."
        if not results:
            return f"No cards match '{query}'."
        return _format_cards(results)

    def render_lesson(self) -> str:
        snapshot = self.controller.snapshot()
        if snapshot.phase is Phase.SETUP:
            return f"Choose a mode and start a {format_clock(self.settings.lesson_duration)} lesson."

        if snapshot.phase is Phase.SUMMARY:
            result = f"## Lesson Complete!\n\nYour score: **{snapshot.score}**"
            if snapshot.missed:
                result += "\n\nWords to review:\n"
                result += "\n".join(f"- {card.word} ({card.pinyin})" for card in snapshot.missed)
            return result

        result = (
            f"Score: **{snapshot.score}** | Time: **{snapshot.clock}** | "
            f"Progress: {snapshot.progress:.0f}%\n\n"
        )
        if snapshot.paused:
            return result + "## Paused"
        if snapshot.prompt is not None:
            result += f"{snapshot.prompt.answer_type}\n\n# {snapshot.prompt.question}"
            if snapshot.feedback is Feedback.CORRECT:
                result += "\n\nCorrect!"
            elif snapshot.feedback is Feedback.INCORRECT:
                result += (
                    f"\n\nCorrect answer: {snapshot.prompt.expected_hanzi} "
                    f"({snapshot.prompt.expected_pinyin})"
                )
        return result

    def _current_turn(self) -> Optional[Tuple[int, int, bool]]:
        session = self.controller.session
        if session is None:
            return None
        return session.index, session.turns_answered, session.feedback is Feedback.NONE

    def _catch_up(self) -> None:
        now = self.clock()
        self.controller.advance_clock(now - self._last_poll)
        self._last_poll = now

    def poll(self) -> Tuple[str, Any]:
        """Feeds elapsed wall time to the lesson and re-renders it.

        Returns:
            The lesson view, and an empty answer box when a new turn has
            begun since the last render, otherwise a no-op update.
        """
        self._catch_up()
        turn = self._current_turn()
        answer: Any = gr.update()
        if turn != self._shown_turn:
            self._shown_turn = turn
            answer = ""
        return self.render_lesson(), answer

    def start_lesson(self, mode: str) -> str:
        result = self.controller.start(self.db.get_cards(), LessonMode(mode))
        if result.reason is Rejection.NOT_SETUP:
            return "Finish or exit the current lesson first.\n\n" + self.render_lesson()
        self._last_poll = self.clock()
        if not result:
            return "Your deck is empty! Add some flashcards before you can start a lesson."
        return self.render_lesson()

    def submit_answer(self, answer: str) -> Tuple[str, str]:
        self._catch_up()
        self.controller.submit_answer(answer or "")
        self._shown_turn = self._current_turn()
        return self.render_lesson(), ""

    def toggle_pause(self) -> str:
        self._catch_up()
        self.controller.toggle_pause()
        self._last_poll = self.clock()
        return self.render_lesson()

    def exit_lesson(self) -> str:
        self.controller.exit()
        return self.render_lesson()

    def restart(self) -> str:
        self.controller.restart()
        self._last_poll = self.clock()
        return self.render_lesson()

    def choose_different_mode(self) -> str:
        self.controller.choose_different_mode()
        return self.render_lesson()


def create_demo_interface() -> gr.Blocks:
    """Creates and configures the Gradio web interface for hanzicards.

    Returns:
        A Gradio Blocks object ready to be launched.
    """
    demo = HanziCardsDemo(db_path=load_db_path())

    with gr.Blocks(title="hanzicards") as interface:
        gr.Markdown("# hanzicards")
        gr.Markdown("Generate Chinese flashcards and drill them in timed lessons")

        with gr.Tab("Generator"):
            with gr.Row():
                api_key_input = gr.Textbox(label="API Key", type="password")
                service_select = gr.Dropdown(
                    choices=AIServiceFactory.get_available_services(),
                    value=demo.ai_service_type,
                    label="AI Service",
                )
                set_key_btn = gr.Button("Set API Key")
            key_output = gr.Textbox(label="API Key Status", interactive=False)

            text_input = gr.Textbox(label="Chinese text", lines=5)
            image_input = gr.Image(label="Image", type="filepath")
            auto_save = gr.Checkbox(label="Auto-save new cards", value=False)
            with gr.Row():
                generate_btn = gr.Button("Generate Flashcards", variant="primary")
                save_btn = gr.Button("Save All")
            generate_output = gr.Textbox(label="Flashcards", interactive=False, lines=12)

            set_key_btn.click(demo.set_api_key, inputs=[api_key_input, service_select], outputs=key_output)
            auto_save.change(demo.set_auto_save, inputs=auto_save, outputs=key_output)
            generate_btn.click(demo.generate, inputs=[text_input, image_input], outputs=generate_output)
            save_btn.click(demo.save_generated, outputs=generate_output)

        with gr.Tab("My Deck"):
            stats_output = gr.Textbox(label="Deck Statistics", interactive=False)
            with gr.Row():
                sort_select = gr.Dropdown(choices=list(SORT_MODES), value="added", label="Sort")
                hsk_select = gr.Dropdown(
                    choices=["all", "1", "2", "3", "4", "5", "6", "unknown"],
                    value="all",
                    label="HSK level",
                )
                date_input = gr.Textbox(label="Added on (YYYY-MM-DD)")
            show_btn = gr.Button("Show Deck", variant="primary")
            with gr.Row():
                search_input = gr.Textbox(label="AI-Powered Search")
                search_btn = gr.Button("Search")
            deck_output = gr.Textbox(label="Cards", interactive=False, lines=12)

            show_btn.click(demo.get_stats, outputs=stats_output)
            show_btn.click(demo.get_deck, inputs=[sort_select, hsk_select, date_input], outputs=deck_output)
            search_btn.click(demo.search, inputs=search_input, outputs=deck_output)

        with gr.Tab("Lesson"):
            mode_select = gr.Radio(
                choices=MODE_CHOICES, value=LessonMode.HANZI_TO_PINYIN.value, label="Mode"
            )
            start_btn = gr.Button("Start Lesson", variant="primary")
            lesson_view = gr.Markdown(demo.render_lesson())
            answer_input = gr.Textbox(label="Your answer", placeholder="Type your answer here...")
            with gr.Row():
                check_btn = gr.Button("Check", variant="primary")
                pause_btn = gr.Button("Pause / Resume")
                exit_btn = gr.Button("Exit")
            with gr.Row():
                again_btn = gr.Button("Practice Again")
                other_mode_btn = gr.Button("Choose Another Mode")

            timer = gr.Timer(0.5)
            timer.tick(demo.poll, outputs=[lesson_view, answer_input])

            start_btn.click(demo.start_lesson, inputs=mode_select, outputs=lesson_view)
            check_btn.click(demo.submit_answer, inputs=answer_input, outputs=[lesson_view, answer_input])
            answer_input.submit(
                demo.submit_answer, inputs=answer_input, outputs=[lesson_view, answer_input]
            )
            pause_btn.click(demo.toggle_pause, outputs=lesson_view)
            exit_btn.click(demo.exit_lesson, outputs=lesson_view)
            again_btn.click(demo.restart, outputs=lesson_view)
            other_mode_btn.click(demo.choose_different_mode, outputs=lesson_view)

    return interface


def load_db_path() -> Optional[str]:
    return os.getenv("HANZICARDS_DB")


def main() -> None:
    """Runs the hanzicards demo interface."""
    interface = create_demo_interface()
    interface.launch(share=False, server_name="0.0.0.0", server_port=7860)


if __name__ == "__main__":
    main()
