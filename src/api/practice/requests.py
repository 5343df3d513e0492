"""Practice test generation requests."""

from enum import Enum

from pydantic import BaseModel, Field

from src.modules.audio.voices import DEFAULT_SPEAKER1_VOICE, DEFAULT_SPEAKER2_VOICE


class PracticeModule(str, Enum):
    READING = "reading"
    LISTENING = "listening"
    WRITING = "writing"
    SPEAKING = "speaking"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class ReadingConfig(BaseModel):
    paragraph_count: int | None = Field(default=None, alias="paragraphCount", ge=3, le=10)
    word_count: int | None = Field(default=None, alias="wordCount", ge=200, le=1500)
    use_word_count_mode: bool = Field(default=False, alias="useWordCountMode")

    model_config = {"populate_by_name": True}


class SpeakerVoiceConfig(BaseModel):
    voice_name: str = Field(alias="voiceName")
    gender: str | None = None

    model_config = {"populate_by_name": True}


class ListeningSpeakerConfig(BaseModel):
    speaker1: SpeakerVoiceConfig = SpeakerVoiceConfig(voice_name=DEFAULT_SPEAKER1_VOICE)
    speaker2: SpeakerVoiceConfig | None = SpeakerVoiceConfig(voice_name=DEFAULT_SPEAKER2_VOICE)
    use_two_speakers: bool = Field(default=True, alias="useTwoSpeakers")

    model_config = {"populate_by_name": True}


class ListeningConfig(BaseModel):
    speaker_config: ListeningSpeakerConfig = Field(
        default_factory=ListeningSpeakerConfig, alias="speakerConfig"
    )

    model_config = {"populate_by_name": True}


class WritingConfig(BaseModel):
    task_type: str | None = Field(default=None, alias="taskType")
    task1_visual_type: str = Field(default="RANDOM", alias="task1VisualType")
    task2_essay_type: str = Field(default="RANDOM", alias="task2EssayType")

    model_config = {"populate_by_name": True}


class GeneratePracticeRequest(BaseModel):
    """Request for generating one practice test."""

    module: PracticeModule
    question_type: str = Field(default="MULTIPLE_CHOICE", alias="questionType")
    difficulty: Difficulty = Difficulty.MEDIUM
    topic: str | None = Field(default=None, max_length=200)
    question_count: int = Field(default=5, alias="questionCount", ge=1, le=20)
    time_minutes: int = Field(default=60, alias="timeMinutes", ge=1, le=180)
    reading_config: ReadingConfig | None = Field(default=None, alias="readingConfig")
    listening_config: ListeningConfig = Field(
        default_factory=ListeningConfig, alias="listeningConfig"
    )
    writing_config: WritingConfig = Field(
        default_factory=WritingConfig, alias="writingConfig"
    )
    save_to_bank: bool = Field(default=False, alias="saveToBank")
    user_api_key: str | None = Field(default=None, alias="userApiKey")

    model_config = {"populate_by_name": True}
