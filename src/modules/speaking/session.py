"""Live examiner sessions: config for a client-side Gemini Live connection."""

from dataclasses import dataclass
from typing import Any

from src.core.context import AuthenticatedUserContext
from src.modules.keys.provider import KeyProvider
from src.utils.logger import get_logger
from src.utils.settings.gemini import GeminiSettings, gemini_settings

logger = get_logger(__name__)

LIVE_VOICES = ("Puck", "Charon", "Kore", "Aoede", "Fenrir", "Leda", "Zephyr", "Iapetus", "Orus")
DEFAULT_LIVE_VOICE = "Puck"

DIFFICULTY_GUIDE = {
    "easy": "Use clear, simple language. Speak at a moderate pace. Ask straightforward questions.",
    "medium": (
        "Use natural conversational language. "
        "Ask moderately complex questions with some follow-ups."
    ),
    "hard": (
        "Use sophisticated vocabulary. "
        "Ask complex, abstract questions requiring detailed responses."
    ),
    "expert": "Use advanced academic vocabulary. Ask highly abstract, philosophical questions.",
}

PART_FOCUS = {
    "PART_1": "Conduct Part 1 only, then thank the candidate and end the test.",
    "PART_2": "Conduct Part 2 only, then thank the candidate and end the test.",
    "PART_3": "Conduct Part 3 only, then thank the candidate and end the test.",
}


@dataclass
class SpeakingSession:
    session_config: dict[str, Any]
    api_key: str
    ws_endpoint: str
    voice_name: str


def select_voice(voice_name: str | None) -> str:
    return voice_name if voice_name in LIVE_VOICES else DEFAULT_LIVE_VOICE


def build_examiner_instruction(
    part_type: str | None, difficulty: str | None, topic: str | None
) -> str:
    level = (difficulty or "medium").lower()
    guide = DIFFICULTY_GUIDE.get(level, DIFFICULTY_GUIDE["medium"])
    topic_focus = (
        f'TOPIC FOCUS: The test should relate to the topic of "{topic}" where appropriate.'
        if topic
        else ""
    )
    part_focus = PART_FOCUS.get((part_type or "").upper(), "Conduct the full test, Parts 1 to 3.")

    return f"""You are an official IELTS Speaking Examiner with a neutral British accent. Your role is to conduct a professional IELTS Speaking test following the official 2025 format precisely.

PERSONALITY & VOICE:
- Speak with a clear, professional British accent
- Be warm but formal, like a real IELTS examiner
- Use natural intonation and appropriate pauses
- Never rush the candidate

EXAMINATION RULES:
- Always start with a formal greeting and identity check
- Follow the official IELTS timing strictly
- If the candidate speaks too long, politely interrupt with "Thank you" and move to the next question
- If the candidate pauses too long (>5 seconds), gently prompt them
- Use natural transition phrases between questions
- At the end of each part, clearly signal the transition

DIFFICULTY LEVEL: {level.upper()}
{guide}

{topic_focus}
SCOPE: {part_focus}

PART 1 STRUCTURE (4-5 minutes):
- Start: "Good morning/afternoon. My name is [examiner]. Could you tell me your full name, please?"
- Follow with: "And what should I call you?"
- Ask 3-4 questions on a familiar topic (home, work, studies, hobbies), then 3-4 on a second topic

PART 2 STRUCTURE (3-4 minutes):
- Say: "Now I'm going to give you a topic, and I'd like you to talk about it for one to two minutes."
- After one minute of preparation, ask the candidate to start speaking
- At 2 minutes: "Thank you." Then ask 1-2 rounding-off questions

PART 3 STRUCTURE (4-5 minutes):
- Transition: "We've been talking about [Part 2 topic], and I'd like to discuss some related questions."
- Ask 4-6 abstract, discussion-type questions related to the Part 2 topic
- Use follow-up prompts: "Why do you think that is?" "Can you give an example?"

BARGE-IN SUPPORT:
- If the candidate interrupts, pause and listen
- Acknowledge their input naturally before continuing"""


def build_session_config(
    voice_name: str, instruction: str, settings: GeminiSettings | None = None
) -> dict[str, Any]:
    settings = settings or gemini_settings
    return {
        "model": settings.GEMINI_LIVE_MODEL,
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice_name}}
            },
        },
        "systemInstruction": {"parts": [{"text": instruction}]},
    }


async def create_speaking_session(
    current_user: AuthenticatedUserContext,
    key_provider: KeyProvider,
    part_type: str | None = None,
    difficulty: str | None = None,
    topic: str | None = None,
    voice_name: str | None = None,
    header_key: str | None = None,
    settings: GeminiSettings | None = None,
) -> SpeakingSession:
    """Hand the client everything it needs to talk to the live model directly.

    The browser holds the key for the whole session, so only the user's own
    key is ever returned. Pool keys are never exposed.
    """
    settings = settings or gemini_settings
    resolution = await key_provider.resolve_user_key(
        current_user.user_id, header_key=header_key
    )
    voice = select_voice(voice_name)
    instruction = build_examiner_instruction(part_type, difficulty, topic)

    logger.info(
        "Speaking session created",
        user_id=str(current_user.user_id),
        voice=voice,
        key_source=resolution.source.value,
    )
    return SpeakingSession(
        session_config=build_session_config(voice, instruction, settings),
        api_key=resolution.primary.value,
        ws_endpoint=settings.GEMINI_LIVE_WS_ENDPOINT,
        voice_name=voice,
    )
