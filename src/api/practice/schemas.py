"""Practice test API schemas."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.api.core.messages import APIResponse


class PracticeModel(BaseModel):
    """Wire models keep the camelCase keys the front end already reads."""

    model_config = ConfigDict(populate_by_name=True)


class QuestionModel(PracticeModel):
    id: UUID
    question_number: int
    question_text: str
    correct_answer: str | None = None
    explanation: str | None = None
    options: Any = None
    heading: str | None = None
    max_answers: int | None = None


class QuestionGroupModel(PracticeModel):
    id: UUID
    instruction: str
    question_type: str
    start_question: int = 1
    end_question: int
    options: dict[str, Any] | None = None
    questions: list[QuestionModel]


class PassageModel(PracticeModel):
    id: UUID
    title: str
    content: str


class ReadingTestModel(PracticeModel):
    test_id: UUID = Field(alias="testId")
    topic: str
    passage: PassageModel
    question_groups: list[QuestionGroupModel] = Field(alias="questionGroups")


class ListeningTestModel(PracticeModel):
    test_id: UUID = Field(alias="testId")
    topic: str
    transcript: str
    speaker_names: dict[str, str] = Field(alias="speakerNames")
    audio_base64: str | None = Field(default=None, alias="audioBase64")
    audio_format: str | None = Field(default=None, alias="audioFormat")
    sample_rate: int | None = Field(default=None, alias="sampleRate")
    question_groups: list[QuestionGroupModel] = Field(alias="questionGroups")


class WritingTaskModel(PracticeModel):
    id: UUID
    task_type: str
    instruction: str
    image_description: str | None = None
    chart_data: dict[str, Any] | None = Field(default=None, alias="chartData")
    visual_type: str | None = None
    essay_type: str | None = None
    word_limit_min: int
    word_limit_max: int


class FullWritingTestModel(PracticeModel):
    id: UUID
    test_type: str = "full_test"
    task1: WritingTaskModel
    task2: WritingTaskModel
    time_minutes: int


class WritingTestModel(PracticeModel):
    test_id: UUID = Field(alias="testId")
    topic: str
    time_minutes: int | None = Field(default=None, alias="timeMinutes")
    writing_task: WritingTaskModel | FullWritingTestModel = Field(alias="writingTask")


class SpeakingQuestionModel(PracticeModel):
    id: UUID
    question_number: int
    question_text: str
    sample_answer: str | None = None


class SpeakingPartModel(PracticeModel):
    id: UUID
    part_number: int
    instruction: str
    questions: list[SpeakingQuestionModel]
    cue_card_topic: str | None = None
    cue_card_content: str | None = None
    preparation_time_seconds: int | None = None
    speaking_time_seconds: int | None = None
    time_limit_seconds: int | None = None


class SpeakingTestModel(PracticeModel):
    test_id: UUID = Field(alias="testId")
    topic: str
    speaking_parts: list[SpeakingPartModel] = Field(alias="speakingParts")


PracticeTestModel = ReadingTestModel | ListeningTestModel | WritingTestModel | SpeakingTestModel

PracticeTestResponse = APIResponse[PracticeTestModel]
