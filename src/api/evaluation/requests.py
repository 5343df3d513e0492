"""Evaluation domain requests."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class WritingSubmission(BaseModel):
    task_number: Literal[1, 2]
    instruction: str = Field(min_length=1)
    response_text: str = Field(min_length=1, max_length=20_000)
    visual_description: str | None = None


class EvaluateWritingRequest(BaseModel):
    """Request for grading one or both writing tasks."""

    test_id: str | None = Field(default=None, alias="testId")
    tasks: list[WritingSubmission] = Field(min_length=1, max_length=2)
    user_api_key: str | None = Field(default=None, alias="userApiKey")

    model_config = {"populate_by_name": True}

    @field_validator("tasks")
    @classmethod
    def unique_task_numbers(cls, tasks: list[WritingSubmission]) -> list[WritingSubmission]:
        numbers = [t.task_number for t in tasks]
        if len(set(numbers)) != len(numbers):
            raise ValueError("Each task may be submitted only once")
        return sorted(tasks, key=lambda t: t.task_number)


class SpeakingQuestionInput(BaseModel):
    id: str
    question_number: int
    question_text: str


class SpeakingPartInput(BaseModel):
    part_number: Literal[1, 2, 3]
    instruction: str | None = None
    cue_card_topic: str | None = None
    cue_card_content: str | None = None
    questions: list[SpeakingQuestionInput] = []


class EvaluateSpeakingRequest(BaseModel):
    """Recorded answers keyed ``part{n}-q{question_id}``, as data URLs or raw base64."""

    test_id: str | None = Field(default=None, alias="testId")
    speaking_parts: list[SpeakingPartInput] = Field(alias="speakingParts", min_length=1)
    audio_data: dict[str, str] = Field(alias="audioData")
    audio_mime_type: str = Field(default="audio/webm", alias="audioMimeType")
    durations: dict[str, float] | None = None
    topic: str | None = None
    difficulty: str | None = None
    part2_speaking_duration: float | None = Field(default=None, alias="part2SpeakingDuration")
    fluency_flag: bool = Field(default=False, alias="fluencyFlag")
    user_api_key: str | None = Field(default=None, alias="userApiKey")

    model_config = {"populate_by_name": True}


class ExplainAnswerRequest(BaseModel):
    question_text: str = Field(alias="questionText", min_length=1)
    user_answer: str | None = Field(default=None, alias="userAnswer")
    correct_answer: str = Field(alias="correctAnswer")
    is_correct: bool = Field(default=False, alias="isCorrect")
    options: Any = None
    question_type: str | None = Field(default=None, alias="questionType")
    transcript_context: str | None = Field(default=None, alias="transcriptContext")
    passage_context: str | None = Field(default=None, alias="passageContext")
    test_type: Literal["reading", "listening"] = Field(default="reading", alias="testType")
    user_api_key: str | None = Field(default=None, alias="userApiKey")

    model_config = {"populate_by_name": True}
