"""Rendering listening scripts to raw PCM speech with the Gemini TTS model."""

import asyncio
import base64
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from src.api.core.exceptions.base import AudioSynthesisError
from src.modules.audio.script import VoiceAssigner, build_segments, detect_speaker_labels
from src.modules.audio.voices import (
    DEFAULT_SPEAKER1_VOICE,
    DEFAULT_SPEAKER2_VOICE,
    VoiceGender,
    voice_gender,
)
from src.modules.generation.infrastructure.gemini_client import (
    GeminiAPIError,
    GeminiClient,
    GeminiConnectionError,
)
from src.modules.generation.orchestrator import compute_backoff
from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.provider import KeyResolution
from src.modules.keys.rotation import KeyRotation
from src.utils.logger import get_logger
from src.utils.settings.gemini import GeminiSettings, gemini_settings

logger = get_logger(__name__)

SEGMENT_PROMPT = (
    "Read this clearly for a listening test. Use natural pacing and brief pauses.\n\n{text}"
)
DIALOGUE_PROMPT = (
    "Read the following conversation slowly and clearly, as if for a language "
    "listening test. Use a moderate speaking pace with natural pauses between "
    "sentences. Pause briefly (about 1-2 seconds) after each speaker finishes "
    "their turn. The two speakers should have distinct, clear voices:\n\n{text}"
)
MONOLOGUE_PROMPT = (
    "Read the following monologue slowly and clearly, as if for a language "
    "listening test. Use a moderate speaking pace with natural pauses between "
    "sentences.\n\n{text}"
)

QUOTA_MESSAGE = (
    "All API keys have reached their rate limit for audio generation. "
    "Please wait a few minutes and try again."
)
PERMISSION_MESSAGE = (
    "API access denied for audio generation. Please verify your Gemini API key "
    "has TTS permissions enabled."
)
REJECTED_MESSAGE = "Audio generation request was rejected. Please try again."
EMPTY_AUDIO_MESSAGE = "Audio generation returned empty response. Please try again."

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class SpeakerVoice:
    voice_name: str
    gender: VoiceGender | None = None

    @property
    def resolved_gender(self) -> VoiceGender:
        return self.gender or voice_gender(self.voice_name)


@dataclass(frozen=True)
class SpeakerConfig:
    speaker1: SpeakerVoice = field(
        default_factory=lambda: SpeakerVoice(DEFAULT_SPEAKER1_VOICE)
    )
    speaker2: SpeakerVoice | None = field(
        default_factory=lambda: SpeakerVoice(DEFAULT_SPEAKER2_VOICE)
    )
    use_two_speakers: bool = True

    @property
    def is_two_speaker(self) -> bool:
        return self.use_two_speakers and self.speaker2 is not None


@dataclass(frozen=True)
class SynthesizedAudio:
    pcm: bytes
    sample_rate: int
    segments: int = 1

    @property
    def audio_base64(self) -> str:
        return base64.b64encode(self.pcm).decode("ascii")


def _voice_config(voice_name: str) -> dict[str, Any]:
    return {"prebuiltVoiceConfig": {"voiceName": voice_name}}


def _tts_body(prompt: str, speech_config: dict[str, Any]) -> dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": speech_config,
        },
    }


class AudioSynthesisPipeline:
    """Turns a script into one PCM buffer.

    Two-speaker scripts with at least two labelled speakers are split into
    per-voice segments that are synthesised one by one and concatenated.
    Everything else goes out as a single TTS call.
    """

    def __init__(
        self,
        client: GeminiClient,
        key_pool: ApiKeyPoolRepository | None = None,
        settings: GeminiSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.key_pool = key_pool
        self.settings = settings or gemini_settings
        self._sleep = sleep

    async def synthesize(
        self,
        resolution: KeyResolution,
        script: str,
        speakers: SpeakerConfig | None = None,
    ) -> SynthesizedAudio:
        speakers = speakers or SpeakerConfig()
        rotation = KeyRotation(resolution, self.key_pool)

        if speakers.is_two_speaker and len(detect_speaker_labels(script)) >= 2:
            return await self._synthesize_stitched(rotation, script, speakers)
        return await self._synthesize_single(rotation, script, speakers)

    async def _synthesize_stitched(
        self, rotation: KeyRotation, script: str, speakers: SpeakerConfig
    ) -> SynthesizedAudio:
        assigner = VoiceAssigner(
            speakers.speaker1.voice_name, speakers.speaker2.voice_name
        )
        segments = build_segments(script, assigner)
        if not segments:
            raise AudioSynthesisError(EMPTY_AUDIO_MESSAGE)

        logger.info("Synthesising stitched dialogue", segments=len(segments))

        chunks: list[bytes] = []
        for index, segment in enumerate(segments):
            body = _tts_body(
                SEGMENT_PROMPT.format(text=segment.text),
                {"voiceConfig": _voice_config(segment.voice_name)},
            )
            chunks.append(await self._call_tts(rotation, body, segment=index))

        pcm = b"".join(chunks)
        logger.info("Stitched audio ready", segments=len(segments), bytes=len(pcm))
        return SynthesizedAudio(
            pcm=pcm,
            sample_rate=self.settings.GEMINI_TTS_SAMPLE_RATE,
            segments=len(segments),
        )

    async def _synthesize_single(
        self, rotation: KeyRotation, script: str, speakers: SpeakerConfig
    ) -> SynthesizedAudio:
        if speakers.is_two_speaker:
            prompt = DIALOGUE_PROMPT.format(text=script)
            speech_config = {
                "multiSpeakerVoiceConfig": {
                    "speakerVoiceConfigs": [
                        {
                            "speaker": "Speaker1",
                            "voiceConfig": _voice_config(speakers.speaker1.voice_name),
                        },
                        {
                            "speaker": "Speaker2",
                            "voiceConfig": _voice_config(speakers.speaker2.voice_name),
                        },
                    ]
                }
            }
        else:
            prompt = MONOLOGUE_PROMPT.format(text=script)
            speech_config = {"voiceConfig": _voice_config(speakers.speaker1.voice_name)}

        pcm = await self._call_tts(rotation, _tts_body(prompt, speech_config))
        return SynthesizedAudio(pcm=pcm, sample_rate=self.settings.GEMINI_TTS_SAMPLE_RATE)

    async def _call_tts(
        self, rotation: KeyRotation, body: dict[str, Any], segment: int = 0
    ) -> bytes:
        """One TTS request with rotation and retries. The key cursor is shared
        across segments, so a key that failed earlier is not retried first."""
        max_retries = self.settings.GEMINI_TTS_MAX_RETRIES
        last_message = "Audio generation failed. Please try again."
        attempt = 0

        while attempt < max_retries:
            key = rotation.current
            try:
                response = await self.client.generate_content(
                    self.settings.GEMINI_TTS_MODEL,
                    key.value,
                    body,
                    timeout=self.settings.GEMINI_TTS_TIMEOUT_SECONDS,
                )
            except GeminiConnectionError as e:
                last_message = f"Connection error during audio generation: {e}"
                logger.warning(
                    "TTS connection error",
                    key=key.fingerprint,
                    segment=segment,
                    attempt=attempt + 1,
                    error=str(e),
                )
                await self._backoff(attempt)
                attempt += 1
                continue
            except GeminiAPIError as e:
                logger.warning(
                    "TTS request failed",
                    key=key.fingerprint,
                    segment=segment,
                    attempt=attempt + 1,
                    status=e.status,
                    provider_status=e.provider_status,
                )
                if e.is_rate_limited:
                    if rotation.has_next():
                        await rotation.rotate()
                        continue
                    await rotation.record_failure()
                    raise AudioSynthesisError(
                        QUOTA_MESSAGE, reason=AudioSynthesisError.QUOTA_EXCEEDED
                    ) from e
                if e.is_permission_denied:
                    if await rotation.rotate(deactivate=True):
                        continue
                    raise AudioSynthesisError(
                        PERMISSION_MESSAGE, reason=AudioSynthesisError.PERMISSION_DENIED
                    ) from e
                if e.is_server_error:
                    last_message = f"Audio generation failed with status {e.status}. Please try again."
                    await self._backoff(attempt)
                    attempt += 1
                    continue
                if e.status == 400:
                    raise AudioSynthesisError(REJECTED_MESSAGE) from e
                raise AudioSynthesisError(
                    f"Audio generation failed with status {e.status}. Please try again."
                ) from e

            audio = response.audio
            if not audio:
                last_message = EMPTY_AUDIO_MESSAGE
                logger.warning(
                    "TTS returned no audio", key=key.fingerprint, segment=segment
                )
                await self._backoff(attempt)
                attempt += 1
                continue

            await rotation.record_success()
            return audio

        logger.error("TTS retries exhausted", segment=segment, reason=last_message)
        raise AudioSynthesisError(last_message)

    async def _backoff(self, attempt: int) -> None:
        await self._sleep(
            compute_backoff(
                attempt,
                self.settings.GEMINI_BACKOFF_BASE_SECONDS,
                self.settings.GEMINI_BACKOFF_MAX_SECONDS,
            )
        )
