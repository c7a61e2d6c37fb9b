from a2a.types import AgentSkill

from assistant_common.constants import TEXT_MEDIA_TYPE

# Stable skill identifiers advertised on the agent card.
GREETING_SKILL_ID = "greeting"
CALCULATION_SKILL_ID = "calculation"
WEATHER_SKILL_ID = "weather"
TRANSLATION_SKILL_ID = "translation"
STREAMING_SKILL_ID = "streaming"

# Every skill takes and returns plain text.
COMMON_MODES = [TEXT_MEDIA_TYPE]

GREETING_SKILL = AgentSkill(
    id=GREETING_SKILL_ID,
    name="Greeting",
    description="Responds to greetings and provides information about capabilities.",
    tags=["greeting", "info"],
    examples=["Hello", "Hi", "What can you do?"],
    input_modes=COMMON_MODES,
    output_modes=COMMON_MODES,
)

CALCULATION_SKILL = AgentSkill(
    id=CALCULATION_SKILL_ID,
    name="Mathematical Calculations",
    description="Performs mathematical calculations and operations.",
    tags=["math", "calculation"],
    examples=["Calculate 2+2", "What is 15 * 7?", "Math: 100/4"],
    input_modes=COMMON_MODES,
    output_modes=COMMON_MODES,
)

WEATHER_SKILL = AgentSkill(
    id=WEATHER_SKILL_ID,
    name="Weather Information",
    description="Provides weather information for specified locations.",
    tags=["weather", "location"],
    examples=["Weather in London", "What's the weather in Tokyo?"],
    input_modes=COMMON_MODES,
    output_modes=COMMON_MODES,
)

TRANSLATION_SKILL = AgentSkill(
    id=TRANSLATION_SKILL_ID,
    name="Language Translation",
    description="Translates text between different languages.",
    tags=["translation", "language"],
    examples=["Translate 'hello' to Spanish", "Translate \"goodbye\" to French"],
    input_modes=COMMON_MODES,
    output_modes=COMMON_MODES,
)

STREAMING_SKILL = AgentSkill(
    id=STREAMING_SKILL_ID,
    name="Streaming Response",
    description=(
        "Demonstrates streaming response capability. Use the message/stream method "
        "to receive real-time updates via SSE."
    ),
    tags=["streaming", "demo"],
    examples=["Start streaming", "Show me a stream"],
    input_modes=COMMON_MODES,
    output_modes=COMMON_MODES,
)

ALL_SKILLS = [GREETING_SKILL, CALCULATION_SKILL, WEATHER_SKILL, TRANSLATION_SKILL, STREAMING_SKILL]

COST_DESCRIPTION = (
    "Variable credits based on operation complexity: Greeting (1), Calculation (2), "
    "Weather (3), Translation (4), Streaming (5)"
)
