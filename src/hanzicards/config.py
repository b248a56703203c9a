"""Configuration for hanzicards lessons."""

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "HANZICARDS_"


class LessonSettings(BaseModel):
    """Fixed parameters of a lesson.

    Attributes:
        lesson_duration: Time budget of a lesson, in time units (seconds).
        feedback_delay: How long feedback stays on screen before the next turn.
        tick_interval: Interval of the repeating countdown tick.
        target_turns: Turn count shown as 100% progress. Display only.
        neutral_tone_optional: Also accept numeric pinyin without the neutral-tone 5.
        speech_locale: Locale handed to the speech callback.
    """

    lesson_duration: int = Field(default=300, gt=0)
    feedback_delay: float = Field(default=1.5, gt=0)
    tick_interval: float = Field(default=1.0, gt=0)
    target_turns: int = Field(default=30, gt=0)
    neutral_tone_optional: bool = True
    speech_locale: str = "zh-CN"

    model_config = ConfigDict(frozen=True)


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> LessonSettings:
    """Builds lesson settings from the environment.

    Each field can be set through a `HANZICARDS_<FIELD>` variable, e.g.
    `HANZICARDS_LESSON_DURATION=600`. A `.env` file is honoured.

    Args:
        overrides: Values that take precedence over the environment.

    Returns:
        The validated settings.
    """
    load_dotenv()

    values: Dict[str, Any] = {}
    for name in LessonSettings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    settings = LessonSettings(**values)
    logger.debug("Loaded lesson settings: %s", settings)
    return settings


def get_api_key(service_type: str) -> Optional[str]:
    """Returns the API key for an AI service from the environment, if any."""
    load_dotenv()
    return os.getenv(f"{service_type.upper()}_API_KEY")
