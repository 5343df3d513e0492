import math
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.api.evaluation.requests import (
    EvaluateSpeakingRequest,
    EvaluateWritingRequest,
    ExplainAnswerRequest,
)
from src.api.evaluation.schemas import (
    CriterionModel,
    ExplanationModel,
    SpeakingEvaluationModel,
    SpeakingTranscriptModel,
    WritingEvaluationModel,
)
from src.core.context import AuthenticatedUserContext
from src.modules.billing.constants import OperationKind
from src.modules.billing.credits.service import credit_hold
from src.modules.billing.usage import GeminiUsageTracker
from src.modules.evaluation import prompts
from src.modules.generation.orchestrator import GenerationOrchestrator, GenerationResult
from src.modules.keys.provider import KeyProvider
from src.utils.logger import get_logger
from src.utils.settings.gemini import gemini_settings

logger = get_logger(__name__)

SPEAKING_GENERATION_CONFIG = {"temperature": 0.3, "maxOutputTokens": 12000}
EXPLANATION_GENERATION_CONFIG = {"temperature": 0.4, "maxOutputTokens": 1024}
WRITING_GENERATION_CONFIG = {"temperature": 0.3}

# Time credited to the rest of the test when only the Part 2 long turn was timed
SPEAKING_OVERHEAD_SECONDS = 60


def round_band(value: float) -> float:
    """Nearest half band, halves rounding up, clamped to 0-9."""
    return max(0.0, min(9.0, math.floor(value * 2 + 0.5) / 2))


def _band(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def validate_writing_evaluation(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Evaluation is not a JSON object"
    if _band(payload.get("overall_band", payload.get("overallBand"))) is None:
        return "Evaluation is missing overall_band"
    return None


def validate_speaking_evaluation(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Evaluation is not a JSON object"
    if _band(payload.get("overallBand", payload.get("overall_band"))) is None:
        return "Evaluation is missing overallBand"
    return None


async def _track_usage(
    db: AsyncSession, current_user: AuthenticatedUserContext, result: GenerationResult
) -> None:
    if result.tokens_used:
        await GeminiUsageTracker(db).record(current_user.user_id, result.tokens_used)


def _task_evaluation(
    data: dict[str, Any], task_number: int, task_numbers: list[int]
) -> dict[str, Any] | None:
    if task_number not in task_numbers:
        return None
    return _as_dict(data.get(f"task{task_number}_evaluation")) or None


def normalize_writing_evaluation(
    data: dict[str, Any], task_numbers: list[int], used_model: str
) -> WritingEvaluationModel:
    task1_band = _band(data.get("task1_band")) if 1 in task_numbers else None
    task2_band = _band(data.get("task2_band")) if 2 in task_numbers else None

    if task1_band is not None and task2_band is not None:
        overall = (task1_band + 2 * task2_band) / 3
    elif task1_band is not None or task2_band is not None:
        overall = task1_band if task1_band is not None else task2_band
    else:
        overall = _band(data.get("overall_band", data.get("overallBand"))) or 0.0

    return WritingEvaluationModel(
        overall_band=round_band(overall),
        task1_band=round_band(task1_band) if task1_band is not None else None,
        task2_band=round_band(task2_band) if task2_band is not None else None,
        task1_evaluation=_task_evaluation(data, 1, task_numbers),
        task2_evaluation=_task_evaluation(data, 2, task_numbers),
        combined_feedback=_as_dict(data.get("combined_feedback")) or None,
        used_model=used_model,
    )


async def evaluate_writing(
    db: AsyncSession,
    current_user: AuthenticatedUserContext,
    request: EvaluateWritingRequest,
    key_provider: KeyProvider,
    orchestrator: GenerationOrchestrator,
    header_key: str | None = None,
) -> WritingEvaluationModel:
    resolution = await key_provider.resolve(
        current_user.user_id, header_key=header_key, body_key=request.user_api_key
    )
    task_numbers = [task.task_number for task in request.tasks]
    logger.info(
        "Evaluating writing",
        user_id=str(current_user.user_id),
        tasks=task_numbers,
        key_source=resolution.source.value,
    )

    async with credit_hold(
        db, current_user.user_id, OperationKind.EVALUATE_WRITING, resolution.is_user_provided
    ):
        result = await orchestrator.generate_json(
            resolution,
            prompts.writing_evaluation_prompt(request.tasks),
            validate=validate_writing_evaluation,
            models=gemini_settings.GEMINI_EVALUATION_MODELS,
            generation_config=WRITING_GENERATION_CONFIG,
        )

    await _track_usage(db, current_user, result)
    evaluation = normalize_writing_evaluation(result.data, task_numbers, result.model)
    logger.info(
        "Writing evaluated",
        user_id=str(current_user.user_id),
        overall_band=evaluation.overall_band,
        model=result.model,
    )
    return evaluation


def _criterion(data: dict[str, Any], camel: str, snake: str) -> CriterionModel:
    value = _as_dict(data.get(camel) or data.get(snake))
    return CriterionModel(
        score=_band(value.get("score")) or 0,
        feedback=str(value.get("feedback") or ""),
        examples=_as_list(value.get("examples")),
    )


def extract_transcripts(data: dict[str, Any]) -> dict[str, str]:
    """The ``part{n}-q{id}`` transcript map, top level or nested under the report."""
    for candidate in (
        data.get("transcripts"),
        _as_dict(data.get("evaluation_report")).get("transcripts"),
        _as_dict(data.get("evaluationReport")).get("transcripts"),
    ):
        if isinstance(candidate, dict):
            return {str(k): str(v) for k, v in candidate.items() if v is not None}
    return {}


def speaking_time_spent(
    durations: dict[str, float] | None, part2_speaking_duration: float | None
) -> int:
    if durations:
        return round(sum(float(value or 0) for value in durations.values()))
    return round((part2_speaking_duration or 0) + SPEAKING_OVERHEAD_SECONDS)


def normalize_speaking_evaluation(
    data: dict[str, Any], request: EvaluateSpeakingRequest, used_model: str
) -> SpeakingEvaluationModel:
    lexical = _as_dict(data.get("lexicalResource") or data.get("lexical_resource"))
    upgrades = _as_list(
        lexical.get("lexicalUpgrades")
        or lexical.get("lexical_upgrades")
        or data.get("lexical_upgrades")
    )
    pronunciation = _as_dict(data.get("pronunciation"))
    part_analysis = [
        {
            "part_number": part.get("partNumber", part.get("part_number", 0)),
            "strengths": _as_list(part.get("strengths")),
            "improvements": _as_list(part.get("improvements")),
        }
        for part in _as_list(data.get("partAnalysis") or data.get("part_analysis"))
        if isinstance(part, dict)
    ]

    transcripts = extract_transcripts(data)
    by_question: dict[int, list[SpeakingTranscriptModel]] = {1: [], 2: [], 3: []}
    by_part: dict[int, str] = {1: "", 2: "", 3: ""}
    for part in request.speaking_parts:
        lines = []
        for question in part.questions:
            key = prompts.audio_key(part.part_number, question.id)
            transcript = transcripts.get(key, "").strip()
            by_question[part.part_number].append(
                SpeakingTranscriptModel(
                    question_number=question.question_number,
                    question_text=question.question_text,
                    transcript=transcript,
                )
            )
            if transcript:
                lines.append(f"Q{question.question_number}: {transcript}")
        by_part[part.part_number] = "\n".join(lines)

    return SpeakingEvaluationModel(
        overall_band=_band(data.get("overallBand", data.get("overall_band"))) or 0,
        fluency_coherence=_criterion(data, "fluencyCoherence", "fluency_coherence"),
        lexical_resource=_criterion(data, "lexicalResource", "lexical_resource"),
        grammatical_range=_criterion(data, "grammaticalRange", "grammatical_range"),
        pronunciation=CriterionModel(
            score=_band(pronunciation.get("score")) or 0,
            feedback=str(pronunciation.get("feedback") or ""),
        ),
        lexical_upgrades=upgrades,
        part_analysis=part_analysis,
        improvement_priorities=_as_list(
            data.get("priorityImprovements") or data.get("improvement_priorities")
        ),
        strengths_to_maintain=_as_list(
            data.get("keyStrengths") or data.get("strengths_to_maintain")
        ),
        examiner_notes=str(data.get("summary") or data.get("examiner_notes") or ""),
        model_answers=_as_list(data.get("modelAnswers") or data.get("model_answers")),
        transcripts_by_part=by_part,
        transcripts_by_question=by_question,
        time_spent_seconds=speaking_time_spent(
            request.durations, request.part2_speaking_duration
        ),
        used_model=used_model,
    )


async def evaluate_speaking(
    db: AsyncSession,
    current_user: AuthenticatedUserContext,
    request: EvaluateSpeakingRequest,
    key_provider: KeyProvider,
    orchestrator: GenerationOrchestrator,
    header_key: str | None = None,
) -> SpeakingEvaluationModel:
    """Grade recorded speaking answers with a multimodal model call."""
    resolution = await key_provider.resolve(
        current_user.user_id, header_key=header_key, body_key=request.user_api_key
    )
    contents = prompts.build_speaking_contents(
        request.speaking_parts,
        request.audio_data,
        request.topic,
        request.difficulty,
        request.part2_speaking_duration,
        request.fluency_flag,
        audio_mime_type=request.audio_mime_type,
    )
    audio_parts = sum(1 for part in contents if "inlineData" in part)
    logger.info(
        "Evaluating speaking",
        user_id=str(current_user.user_id),
        parts=[p.part_number for p in request.speaking_parts],
        audio_parts=audio_parts,
        key_source=resolution.source.value,
    )

    async with credit_hold(
        db, current_user.user_id, OperationKind.EVALUATE_SPEAKING, resolution.is_user_provided
    ):
        result = await orchestrator.generate_json(
            resolution,
            contents,
            validate=validate_speaking_evaluation,
            models=gemini_settings.GEMINI_EVALUATION_MODELS,
            generation_config=SPEAKING_GENERATION_CONFIG,
            timeout=gemini_settings.GEMINI_MULTIMODAL_TIMEOUT_SECONDS,
        )

    await _track_usage(db, current_user, result)
    evaluation = normalize_speaking_evaluation(result.data, request, result.model)
    logger.info(
        "Speaking evaluated",
        user_id=str(current_user.user_id),
        overall_band=evaluation.overall_band,
        model=result.model,
    )
    return evaluation


async def explain_answer(
    db: AsyncSession,
    current_user: AuthenticatedUserContext,
    request: ExplainAnswerRequest,
    key_provider: KeyProvider,
    orchestrator: GenerationOrchestrator,
    header_key: str | None = None,
) -> ExplanationModel:
    resolution = await key_provider.resolve(
        current_user.user_id, header_key=header_key, body_key=request.user_api_key
    )
    prompt = prompts.explain_answer_prompt(
        request.question_text,
        request.user_answer,
        request.correct_answer,
        request.is_correct,
        options=request.options,
        question_type=request.question_type,
        transcript_context=request.transcript_context,
        passage_context=request.passage_context,
        test_type=request.test_type,
    )

    async with credit_hold(
        db, current_user.user_id, OperationKind.EXPLAIN_ANSWER, resolution.is_user_provided
    ):
        result = await orchestrator.generate_text(
            resolution, prompt, generation_config=EXPLANATION_GENERATION_CONFIG
        )

    await _track_usage(db, current_user, result)
    return ExplanationModel(explanation=result.text.strip())
