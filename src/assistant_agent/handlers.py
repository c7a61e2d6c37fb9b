"""Synchronous handlers for the greeting, calculation, weather, translation and general intents.

Each handler returns a ``TaskHandlerResult`` whose metadata carries the
credits it costs. User-input problems become ``failed`` results charged one
credit; they are never raised.
"""

from __future__ import annotations

import random
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from a2a.types import TaskState

from assistant_agent.arithmetic import ArithmeticExpressionError, evaluate
from assistant_agent.intents import detect_greeting
from assistant_agent.results import TaskHandlerResult
from assistant_common.constants import CREDITS_USED_KEY, PLAN_ID_KEY

GREETING_CREDITS = 1
CALCULATION_CREDITS = 2
WEATHER_CREDITS = 3
TRANSLATION_CREDITS = 4
STREAMING_CREDITS = 5
PUSH_NOTIFICATION_CREDITS = 5
GENERAL_CREDITS = 1
ERROR_CREDITS = 1

CAPABILITIES_MENU = (
    "• Greetings and information (1 credit)\n"
    "• Mathematical calculations (2 credits)\n"
    "• Weather information (3 credits)\n"
    "• Language translations (4 credits)\n"
    "• Streaming responses (5 credits)\n"
)

CREDIT_PRICE_LIST = (
    "• Greetings: 1 credit\n"
    "• Calculations: 2 credits\n"
    "• Weather: 3 credits\n"
    "• Translations: 4 credits\n"
    "• Streaming: 5 credits\n"
)

_TRIGGER_RE = re.compile(r".*?(calculate|math|compute|solve|what is)\s+", re.IGNORECASE | re.DOTALL)
_NON_ARITHMETIC_RE = re.compile(r"[^0-9+\-*/().\s]")
_LOCATION_RE = re.compile(r"weather\s+(?:in\s+)?(.*)", re.IGNORECASE | re.DOTALL)
_TRANSLATION_RE = re.compile(r"translate\s+['\"]([^'\"]+)['\"]\s+to\s+(\w+)", re.IGNORECASE)

WEATHER_CONDITIONS = ("Sunny", "Cloudy", "Rainy", "Snowy", "Windy", "Partly Cloudy")

PHRASEBOOK: Dict[str, Dict[str, str]] = {
    "spanish": {
        "hello": "hola",
        "goodbye": "adiós",
        "thank you": "gracias",
        "good morning": "buenos días",
        "how are you": "¿cómo estás?",
    },
    "french": {
        "hello": "bonjour",
        "goodbye": "au revoir",
        "thank you": "merci",
        "good morning": "bonjour",
        "how are you": "comment allez-vous?",
    },
    "german": {
        "hello": "hallo",
        "goodbye": "auf wiedersehen",
        "thank you": "danke",
        "good morning": "guten morgen",
        "how are you": "wie geht es dir?",
    },
}


def _metadata(plan_id: str, credits: int, operation_type: str, **extra: Any) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        CREDITS_USED_KEY: credits,
        PLAN_ID_KEY: plan_id,
        "operationType": operation_type,
    }
    metadata.update(extra)
    return metadata


def _failed(text: str, plan_id: str, operation_type: str, **extra: Any) -> TaskHandlerResult:
    return TaskHandlerResult.from_text(
        text,
        state=TaskState.failed,
        metadata=_metadata(plan_id, ERROR_CREDITS, operation_type, **extra),
    )


def handle_greeting(user_text: str, *, plan_id: str) -> TaskHandlerResult:
    greeting = detect_greeting(user_text) or "Hello"
    text = (
        f"{greeting}! I'm your AI assistant with payment integration. I can help you with:\n"
        f"{CAPABILITIES_MENU}\n"
        "Just ask me anything!"
    )
    return TaskHandlerResult.from_text(
        text,
        metadata=_metadata(plan_id, GREETING_CREDITS, "greeting", costDescription="Basic greeting response"),
    )


def extract_expression(user_text: str) -> str:
    """Strip the trigger phrase and anything that is not arithmetic."""
    stripped = _TRIGGER_RE.sub("", user_text, count=1)
    return " ".join(_NON_ARITHMETIC_RE.sub("", stripped).split())


def handle_calculation(user_text: str, *, plan_id: str) -> TaskHandlerResult:
    expression = extract_expression(user_text)
    if not expression:
        return _failed("Error: Please provide a valid mathematical expression", plan_id, "calculation_error")

    try:
        result = evaluate(expression)
    except ArithmeticExpressionError:
        return _failed("Error: Invalid mathematical expression", plan_id, "calculation_error", expression=expression)

    return TaskHandlerResult.from_text(
        f"📊 Calculation Result:\n{expression} = {result}",
        metadata=_metadata(
            plan_id,
            CALCULATION_CREDITS,
            "calculation",
            costDescription="Mathematical calculation",
            expression=expression,
            result=result,
        ),
    )


def extract_location(user_text: str) -> str:
    match = _LOCATION_RE.search(user_text)
    if not match:
        return ""
    return match.group(1).strip().rstrip("?!.").strip()


def simulate_weather(location: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    # Stand-in for a weather API.
    rng = rng or random.Random()
    return {
        "location": location,
        "description": rng.choice(WEATHER_CONDITIONS),
        "temperature": rng.randint(5, 34),
        "humidity": rng.randint(30, 69),
        "windSpeed": rng.randint(5, 24),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def handle_weather(user_text: str, *, plan_id: str, rng: Optional[random.Random] = None) -> TaskHandlerResult:
    location = extract_location(user_text)
    if not location:
        return _failed("Error: Please specify a location for weather information", plan_id, "weather_error")

    weather = simulate_weather(location, rng)
    text = (
        f"🌤️ Weather in {location}:\n"
        f"{weather['description']}, {weather['temperature']}°C\n"
        f"Humidity: {weather['humidity']}%\n"
        f"Wind: {weather['windSpeed']} km/h"
    )
    return TaskHandlerResult.from_text(
        text,
        metadata=_metadata(
            plan_id,
            WEATHER_CREDITS,
            "weather",
            costDescription="Weather information request",
            location=location,
            weatherData=weather,
        ),
    )


def simulate_translation(text: str, target_language: str) -> str:
    phrase = PHRASEBOOK.get(target_language.lower(), {}).get(text.lower())
    if phrase:
        return phrase
    return f"{text} ({target_language})"


def handle_translation(user_text: str, *, plan_id: str) -> TaskHandlerResult:
    match = _TRANSLATION_RE.search(user_text)
    if not match:
        return _failed("Error: Please use format: 'translate \"text\" to language'", plan_id, "translation_error")

    text, target_language = match.groups()
    translation = simulate_translation(text, target_language)
    return TaskHandlerResult.from_text(
        f"🌍 Translation:\n\"{text}\" → \"{translation}\" ({target_language})",
        metadata=_metadata(
            plan_id,
            TRANSLATION_CREDITS,
            "translation",
            costDescription="Language translation",
            originalText=text,
            targetLanguage=target_language,
            translatedText=translation,
        ),
    )


def handle_general(user_text: str, *, plan_id: str) -> TaskHandlerResult:
    text = (
        f"🤖 I received your request: \"{user_text}\"\n\n"
        "I'm an AI assistant with payment integration. Each operation costs different credits:\n"
        f"{CREDIT_PRICE_LIST}\n"
        "Try asking me to calculate something, get weather info, or translate text!"
    )
    return TaskHandlerResult.from_text(
        text,
        metadata=_metadata(plan_id, GENERAL_CREDITS, "general", costDescription="General request processing"),
    )
