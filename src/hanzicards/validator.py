"""Answer validation for lesson turns.

Everything here is pure: no function mutates an entry or a session.
"""

import itertools
import re
import unicodedata
from typing import Dict, List, Tuple

from .core import Direction, VocabularyEntry

NEUTRAL_TONE = 5

_WHITESPACE = re.compile(r"\s+")

TONE_MARKS: Dict[str, Tuple[str, int]] = {
    "ā": ("a", 1), "á": ("a", 2), "ǎ": ("a", 3), "à": ("a", 4),
    "ō": ("o", 1), "ó": ("o", 2), "ǒ": ("o", 3), "ò": ("o", 4),
    "ē": ("e", 1), "é": ("e", 2), "ě": ("e", 3), "è": ("e", 4),
    "ī": ("i", 1), "í": ("i", 2), "ǐ": ("i", 3), "ì": ("i", 4),
    "ū": ("u", 1), "ú": ("u", 2), "ǔ": ("u", 3), "ù": ("u", 4),
    "ǖ": ("v", 1), "ǘ": ("v", 2), "ǚ": ("v", 3), "ǜ": ("v", 4),
}


def normalize(text: str) -> str:
    """NFC-composes, trims, lowercases and removes all whitespace."""
    composed = unicodedata.normalize("NFC", text)
    return _WHITESPACE.sub("", composed.strip().lower())


def strip_tone_marks(text: str) -> str:
    """Removes diacritics and keeps the base letters ("lǜ" becomes "lu")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _syllable_to_numbers(syllable: str, neutral_optional: bool) -> str:
    letters = []
    tone = None
    for ch in syllable:
        if ch in TONE_MARKS:
            base, tone = TONE_MARKS[ch]
            letters.append(base)
        elif ch == "ü":
            letters.append("v")
        else:
            letters.append(ch)
    if tone is None:
        return "".join(letters) + ("" if neutral_optional else str(NEUTRAL_TONE))
    return "".join(letters) + str(tone)


def tone_marks_to_numbers(pinyin: str, neutral_optional: bool = False) -> str:
    """Rewrites tone-marked pinyin into numbered pinyin.

    A syllable is a maximal run of letters. Its toned vowel is replaced by the
    base vowel and the tone digit is appended to the syllable; a syllable
    without a tone mark gets 5 unless `neutral_optional` is set, in which case
    it gets no digit. Anything that is not a letter is kept as is.

    >>> tone_marks_to_numbers("nǐ hǎo")
    'ni3 hao3'
    >>> tone_marks_to_numbers("xiè xie")
    'xie4 xie5'
    """
    text = unicodedata.normalize("NFC", pinyin).lower()
    parts = []
    for is_letter, group in itertools.groupby(text, key=str.isalpha):
        chunk = "".join(group)
        parts.append(_syllable_to_numbers(chunk, neutral_optional) if is_letter else chunk)
    return "".join(parts)


def accepted_answers(
    direction: Direction, entry: VocabularyEntry, neutral_tone_optional: bool = True
) -> List[str]:
    """Returns the normalized forms an answer may take for this turn."""
    if direction is not Direction.HANZI_TO_PINYIN:
        return [normalize(entry.word)]

    marked = normalize(entry.pinyin)
    forms = [
        marked,
        strip_tone_marks(marked),
        normalize(tone_marks_to_numbers(entry.pinyin)),
    ]
    if neutral_tone_optional:
        forms.append(normalize(tone_marks_to_numbers(entry.pinyin, neutral_optional=True)))

    unique = []
    for form in forms:
        if form not in unique:
            unique.append(form)
    return unique


def compare(
    direction: Direction,
    entry: VocabularyEntry,
    raw_input: str,
    neutral_tone_optional: bool = True,
) -> bool:
    """Checks a free-text answer against the entry for the given direction.

    For `Direction.HANZI_TO_PINYIN` the answer may be the marked pinyin, the
    pinyin without marks, or numbered pinyin. The character directions need
    the exact word.

    Args:
        direction: The direction of the current turn.
        entry: The entry being asked.
        raw_input: What the learner typed.
        neutral_tone_optional: Accept numbered pinyin with the 5 left out.

    Returns:
        True when the normalized answer matches one of the accepted forms.
    """
    answer = normalize(raw_input)
    if not answer:
        return False
    return answer in accepted_answers(direction, entry, neutral_tone_optional)
