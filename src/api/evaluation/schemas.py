"""Evaluation API schemas."""

from typing import Any

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse


class WritingEvaluationModel(BaseModel):
    overall_band: float
    task1_band: float | None = None
    task2_band: float | None = None
    task1_evaluation: dict[str, Any] | None = None
    task2_evaluation: dict[str, Any] | None = None
    combined_feedback: dict[str, Any] | None = None
    used_model: str


class CriterionModel(BaseModel):
    score: float = 0
    feedback: str = ""
    examples: list[Any] = []


class SpeakingTranscriptModel(BaseModel):
    question_number: int
    question_text: str
    transcript: str


class SpeakingEvaluationModel(BaseModel):
    overall_band: float
    fluency_coherence: CriterionModel
    lexical_resource: CriterionModel
    grammatical_range: CriterionModel
    pronunciation: CriterionModel
    lexical_upgrades: list[Any] = []
    part_analysis: list[dict[str, Any]] = []
    improvement_priorities: list[Any] = []
    strengths_to_maintain: list[Any] = []
    examiner_notes: str = ""
    model_answers: list[Any] = Field(default=[], alias="modelAnswers")
    transcripts_by_part: dict[int, str] = {}
    transcripts_by_question: dict[int, list[SpeakingTranscriptModel]] = {}
    time_spent_seconds: int = 0
    used_model: str

    model_config = {"populate_by_name": True}


class ExplanationModel(BaseModel):
    explanation: str


WritingEvaluationResponse = APIResponse[WritingEvaluationModel]
SpeakingEvaluationResponse = APIResponse[SpeakingEvaluationModel]
ExplanationResponse = APIResponse[ExplanationModel]
