"""Keyword-based routing of free text to one of the agent's handlers."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional


class Intent(str, Enum):
    GREETING = "greeting"
    CALCULATION = "calculation"
    WEATHER = "weather"
    TRANSLATION = "translation"
    STREAMING = "streaming"
    PUSH_NOTIFICATION = "push_notification"
    GENERAL = "general"


GREETING_WORDS = (
    "hello",
    "hi",
    "hey",
    "good morning",
    "good afternoon",
    "good evening",
)
MATH_KEYWORDS = ("calculate", "math", "compute", "solve", "what is", "=")
TRANSLATION_KEYWORDS = ("translate", "translation", "say in", "how do you say")
WEATHER_KEYWORD = "weather"
STREAMING_KEYWORD = "stream"
PUSH_NOTIFICATION_KEYWORD = "push notification"

_GREETING_RE = re.compile("|".join(re.escape(word) for word in GREETING_WORDS), re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")
_OPERATOR_RE = re.compile(r"[+\-*/()]")


def detect_greeting(text: str) -> Optional[str]:
    """Return the leftmost greeting as written in ``text``, if any.

    Plain substring match, so "Chicago" counts as a greeting ("hi").
    """
    match = _GREETING_RE.search(text)
    return match.group(0) if match else None


def is_greeting(text: str) -> bool:
    return detect_greeting(text) is not None


def is_calculation(text: str) -> bool:
    lowered = text.lower()
    if any(keyword in lowered for keyword in MATH_KEYWORDS):
        return True
    return bool(_DIGIT_RE.search(text) and _OPERATOR_RE.search(text))


def is_weather_request(text: str) -> bool:
    return WEATHER_KEYWORD in text.lower()


def is_translation_request(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in TRANSLATION_KEYWORDS)


def is_streaming_request(text: str) -> bool:
    return STREAMING_KEYWORD in text.lower()


def is_push_notification_request(text: str) -> bool:
    return PUSH_NOTIFICATION_KEYWORD in text.lower()


# First match wins.
_RULES = (
    (Intent.GREETING, is_greeting),
    (Intent.CALCULATION, is_calculation),
    (Intent.WEATHER, is_weather_request),
    (Intent.TRANSLATION, is_translation_request),
    (Intent.STREAMING, is_streaming_request),
    (Intent.PUSH_NOTIFICATION, is_push_notification_request),
)


def classify(text: str) -> Intent:
    for intent, matches in _RULES:
        if matches(text):
            return intent
    return Intent.GENERAL
