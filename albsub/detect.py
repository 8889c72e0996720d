"""Source language detection for subtitle text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from langdetect import DetectorFactory, LangDetectException, detect

from .structures import SubtitleBlock

# langdetect is randomised unless seeded.
DetectorFactory.seed = 0

LANGUAGE_NAMES = {
    "it": "Italian",
    "en": "English",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ro": "Romanian",
    "tr": "Turkish",
    "pl": "Polish",
    "sq": "Albanian",
    "sr": "Serbian",
    "hr": "Croatian",
    "mk": "Macedonian",
    "bg": "Bulgarian",
    "el": "Greek",
    "ru": "Russian",
    "und": "Unknown",
}


@dataclass(frozen=True)
class DetectedLanguage:
    code: str
    name: str


def detect_language(text: str) -> DetectedLanguage:
    """Guess the language of ``text``; ``und`` when it cannot be told."""

    try:
        code = detect(text)
    except LangDetectException:
        code = "und"
    return DetectedLanguage(code=code, name=LANGUAGE_NAMES.get(code, code))


def detect_from_blocks(
    blocks: Sequence[SubtitleBlock],
    sample_size: int = 10,
) -> DetectedLanguage:
    sample = ". ".join(" ".join(block.lines) for block in blocks[:sample_size])
    return detect_language(sample)
