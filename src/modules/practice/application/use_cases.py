import random
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions.base import AudioSynthesisError, PracticeAPIException
from src.api.practice.requests import GeneratePracticeRequest, PracticeModule
from src.api.practice.schemas import (
    FullWritingTestModel,
    ListeningTestModel,
    PassageModel,
    PracticeTestModel,
    QuestionGroupModel,
    QuestionModel,
    ReadingTestModel,
    SpeakingPartModel,
    SpeakingQuestionModel,
    SpeakingTestModel,
    WritingTaskModel,
    WritingTestModel,
)
from src.core.context import AuthenticatedUserContext
from src.database.models import TestPreset
from src.modules.audio.synthesizer import (
    AudioSynthesisPipeline,
    SpeakerConfig,
    SpeakerVoice,
)
from src.modules.audio.voices import VoiceGender, build_gender_constraint
from src.modules.billing.constants import OperationKind
from src.modules.billing.credits.service import credit_hold
from src.modules.billing.usage import GeminiUsageTracker
from src.modules.generation.orchestrator import GenerationOrchestrator
from src.modules.keys.provider import KeyProvider, KeyResolution
from src.modules.practice import prompts
from src.modules.practice.validation import (
    validate_listening,
    validate_reading,
    validate_speaking,
    validate_writing,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

OPERATION_BY_MODULE = {
    PracticeModule.READING: OperationKind.GENERATE_READING,
    PracticeModule.LISTENING: OperationKind.GENERATE_LISTENING,
    PracticeModule.WRITING: OperationKind.GENERATE_WRITING,
    PracticeModule.SPEAKING: OperationKind.GENERATE_SPEAKING,
}

MONOLOGUE_MIN_LENGTH = 50
WRITING_TEMPERATURE = 0.2

# Top-level payload keys copied into the question group for renderers that need them
LISTENING_GROUP_KEYS = {
    "MAP_LABELING": ("map_description", "map_type", "map_labels", "landmarks"),
    "TABLE_COMPLETION": ("table_data",),
    "FLOWCHART_COMPLETION": ("flowchart_title", "flowchart_steps"),
    "NOTE_COMPLETION": ("note_sections",),
    "MATCHING_CORRECT_LETTER": ("options",),
}


@dataclass
class PracticeContext:
    """Everything one generation request needs after key resolution."""

    user: AuthenticatedUserContext
    request: GeneratePracticeRequest
    resolution: KeyResolution
    orchestrator: GenerationOrchestrator
    audio: AudioSynthesisPipeline
    topic: str
    tokens_used: int = 0


class ShapedPayload:
    """Validator that also builds the response models from a payload.

    Payloads that pass the presence checks but cannot be turned into models
    are reported as a problem, so the orchestrator falls back to the next
    model. ``built`` holds the models of the last accepted payload.
    """

    def __init__(
        self,
        check: Callable[[Any], str | None],
        build: Callable[[dict[str, Any]], Any],
    ):
        self.check = check
        self.build = build
        self.built: Any = None

    def __call__(self, payload: Any) -> str | None:
        problem = self.check(payload)
        if problem is not None:
            return problem
        try:
            self.built = self.build(payload)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            return f"Unusable payload shape in AI response: {e}"
        return None


async def generate_practice_test(
    db: AsyncSession,
    current_user: AuthenticatedUserContext,
    request: GeneratePracticeRequest,
    key_provider: KeyProvider,
    orchestrator: GenerationOrchestrator,
    audio: AudioSynthesisPipeline,
    header_key: str | None = None,
) -> PracticeTestModel:
    """Generate one practice test for ``request.module``.

    Pool-funded requests are charged against the daily credit ledger before
    any provider call, and refunded if generation fails.
    """
    resolution = await key_provider.resolve(
        current_user.user_id, header_key=header_key, body_key=request.user_api_key
    )
    operation = OPERATION_BY_MODULE[request.module]
    ctx = PracticeContext(
        user=current_user,
        request=request,
        resolution=resolution,
        orchestrator=orchestrator,
        audio=audio,
        topic=prompts.pick_topic(request.topic),
    )

    logger.info(
        "Generating practice test",
        user_id=str(current_user.user_id),
        module=request.module.value,
        question_type=request.question_type,
        difficulty=request.difficulty.value,
        key_source=resolution.source.value,
    )

    async with credit_hold(
        db, current_user.user_id, operation, resolution.is_user_provided
    ):
        result = await GENERATORS[request.module](ctx)

    if ctx.tokens_used:
        await GeminiUsageTracker(db).record(current_user.user_id, ctx.tokens_used)

    if request.save_to_bank:
        await save_to_test_bank(db, request.module, ctx.topic, result, current_user)

    return result


async def save_to_test_bank(
    db: AsyncSession,
    module: PracticeModule,
    topic: str,
    test: PracticeTestModel,
    current_user: AuthenticatedUserContext,
) -> bool:
    """Store a generated test as an unpublished preset. Failures only log."""
    preset = TestPreset(
        module=module.value,
        topic=topic,
        payload=test.model_dump(mode="json", by_alias=True),
        is_published=False,
        created_by=current_user.user_id,
    )
    db.add(preset)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to save test to bank", module=module.value, error=str(e))
        return False

    logger.info("Saved test to bank", module=module.value, preset_id=str(preset.id))
    return True


def _build_questions(
    raw_questions: list[dict[str, Any]], max_answers: int | None = None
) -> list[QuestionModel]:
    return [
        QuestionModel(
            id=uuid.uuid4(),
            question_number=q.get("question_number") or index + 1,
            question_text=str(q.get("question_text", "")),
            correct_answer=(
                str(q["correct_answer"]) if q.get("correct_answer") is not None else None
            ),
            explanation=q.get("explanation"),
            options=q.get("options"),
            heading=q.get("heading"),
            max_answers=(q.get("max_answers") or max_answers) if max_answers else None,
        )
        for index, q in enumerate(raw_questions)
    ]


def _group_options(
    payload: dict[str, Any], question_type: str, group_keys: tuple[str, ...]
) -> dict[str, Any] | None:
    options = {key: payload[key] for key in group_keys if payload.get(key) is not None}
    first_options = (payload.get("questions") or [{}])[0].get("options")
    if not options and "MULTIPLE_CHOICE" in question_type and first_options:
        options = {"options": first_options}
    if question_type == "MULTIPLE_CHOICE_MULTIPLE" and first_options:
        options.update(
            max_answers=payload.get("max_answers") or 3,
            option_format="A",
        )
    return options or None


async def _generate_reading(ctx: PracticeContext) -> ReadingTestModel:
    request = ctx.request
    config = request.reading_config
    paragraph_count, word_count = 6, 750
    if config is not None:
        if config.use_word_count_mode and config.word_count:
            word_count = config.word_count
            paragraph_count = max(3, min(10, -(-word_count // 110)))
        elif config.paragraph_count:
            paragraph_count = config.paragraph_count
            word_count = paragraph_count * 110

    prompt = prompts.build_reading_prompt(
        request.question_type,
        ctx.topic,
        request.difficulty.value,
        request.question_count,
        paragraph_count=paragraph_count,
        word_count=word_count,
    )
    is_mcma = request.question_type == "MULTIPLE_CHOICE_MULTIPLE"

    def build(payload: dict[str, Any]) -> tuple[PassageModel, list[QuestionModel]]:
        passage = PassageModel(
            id=uuid.uuid4(),
            title=payload["passage"].get("title") or "Reading Passage",
            content=payload["passage"]["content"],
        )
        return passage, _build_questions(
            payload["questions"], max_answers=3 if is_mcma else None
        )

    shaped = ShapedPayload(validate_reading, build)
    result = await ctx.orchestrator.generate_json(ctx.resolution, prompt, validate=shaped)
    ctx.tokens_used += result.tokens_used
    payload = result.data
    passage, questions = shaped.built

    end_question = 3 if is_mcma else len(questions)
    fmt = prompts.question_format(request.question_type)

    return ReadingTestModel(
        test_id=uuid.uuid4(),
        topic=ctx.topic,
        passage=passage,
        question_groups=[
            QuestionGroupModel(
                id=uuid.uuid4(),
                instruction=payload.get("instruction") or f"Questions 1-{end_question}",
                question_type=request.question_type,
                end_question=end_question,
                options=_group_options(payload, request.question_type, fmt.group_keys),
                questions=questions,
            )
        ],
    )


def _speaker_config(ctx: PracticeContext) -> SpeakerConfig:
    config = ctx.request.listening_config.speaker_config

    def voice(cfg) -> SpeakerVoice | None:
        if cfg is None:
            return None
        gender = VoiceGender(cfg.gender) if cfg.gender in {g.value for g in VoiceGender} else None
        return SpeakerVoice(cfg.voice_name, gender)

    return SpeakerConfig(
        speaker1=voice(config.speaker1),
        speaker2=voice(config.speaker2),
        use_two_speakers=config.use_two_speakers,
    )


def display_transcript(transcript: str, speaker_names: dict[str, str]) -> str:
    """Replace the TTS speaker labels with the characters' names."""
    for label in ("Speaker1", "Speaker2"):
        name = speaker_names.get(label)
        if name:
            transcript = transcript.replace(f"{label}:", f"{name}:")
    return transcript


async def _rewrite_as_monologue(ctx: PracticeContext, dialogue: str) -> str | None:
    try:
        result = await ctx.orchestrator.generate_text(
            ctx.resolution,
            prompts.MONOLOGUE_REWRITE_PROMPT.format(dialogue=dialogue),
            max_retries=1,
        )
    except PracticeAPIException as e:
        logger.warning("Monologue rewrite failed", error=e.message)
        return None

    ctx.tokens_used += result.tokens_used
    monologue = result.text.strip()
    if len(monologue) <= MONOLOGUE_MIN_LENGTH:
        logger.warning("Monologue rewrite too short", length=len(monologue))
        return None
    return monologue


async def _generate_listening(ctx: PracticeContext) -> ListeningTestModel:
    request = ctx.request
    speakers = _speaker_config(ctx)
    scenario = prompts.pick_scenario()
    prompt = prompts.build_listening_prompt(
        request.question_type,
        ctx.topic,
        request.difficulty.value,
        scenario,
        use_two_speakers=speakers.is_two_speaker,
        gender_constraint=build_gender_constraint(
            speakers.speaker1.voice_name, speakers.is_two_speaker
        ),
    )
    shaped = ShapedPayload(validate_listening, lambda p: _build_questions(p["questions"]))
    result = await ctx.orchestrator.generate_json(ctx.resolution, prompt, validate=shaped)
    ctx.tokens_used += result.tokens_used
    payload = result.data
    questions = shaped.built

    dialogue = payload["dialogue"]
    transcript = dialogue
    speaker_names = {
        str(k): str(v) for k, v in (payload.get("speaker_names") or {}).items()
    }

    audio = None
    try:
        audio = await ctx.audio.synthesize(ctx.resolution, dialogue, speakers)
    except AudioSynthesisError as e:
        logger.warning(
            "Listening audio unavailable",
            reason=e.reason,
            error=e.message,
            two_speakers=speakers.is_two_speaker,
        )
        if speakers.is_two_speaker:
            monologue = await _rewrite_as_monologue(ctx, dialogue)
            if monologue is not None:
                transcript = monologue
                speaker_names = {"Speaker1": "Narrator"}

    fmt = prompts.question_format(request.question_type)
    group_keys = LISTENING_GROUP_KEYS.get(request.question_type, fmt.group_keys)
    if request.question_type == "DRAG_AND_DROP_OPTIONS" and payload.get("drag_options"):
        options = {"options": payload["drag_options"]}
    else:
        options = _group_options(payload, request.question_type, group_keys)

    return ListeningTestModel(
        test_id=uuid.uuid4(),
        topic=ctx.topic,
        transcript=display_transcript(transcript, speaker_names),
        speaker_names=speaker_names,
        audio_base64=audio.audio_base64 if audio else None,
        audio_format="pcm" if audio else None,
        sample_rate=audio.sample_rate if audio else None,
        question_groups=[
            QuestionGroupModel(
                id=uuid.uuid4(),
                instruction=payload.get("instruction") or f"Questions 1-{len(questions)}",
                question_type=request.question_type,
                end_question=len(questions),
                options=options,
                questions=questions,
            )
        ],
    )


async def _generate_writing_task(
    ctx: PracticeContext, task_number: int
) -> WritingTaskModel:
    config = ctx.request.writing_config
    difficulty = ctx.request.difficulty.value

    if task_number == 1:
        visual_type = config.task1_visual_type
        if visual_type == "RANDOM" or visual_type not in prompts.WRITING_VISUAL_TYPES:
            visual_type = random.choice(prompts.WRITING_VISUAL_TYPES)
        prompt = prompts.build_writing_task1_prompt(ctx.topic, difficulty, visual_type)
    else:
        essay_type = config.task2_essay_type
        if essay_type == "RANDOM" or essay_type not in prompts.ESSAY_FORMAT_GUIDE:
            essay_type = random.choice(list(prompts.ESSAY_FORMAT_GUIDE))
        prompt = prompts.build_writing_task2_prompt(ctx.topic, difficulty, essay_type)

    is_task1 = task_number == 1

    def build(payload: dict[str, Any]) -> WritingTaskModel:
        return WritingTaskModel(
            id=uuid.uuid4(),
            task_type="task1" if is_task1 else "task2",
            instruction=payload["instruction"],
            image_description=payload.get("visual_description") or payload["instruction"],
            chart_data=payload.get("visualData") if is_task1 else None,
            visual_type=payload.get("visual_type") if is_task1 else None,
            essay_type=payload.get("essay_type") if not is_task1 else None,
            word_limit_min=150 if is_task1 else 250,
            word_limit_max=200 if is_task1 else 350,
        )

    shaped = ShapedPayload(validate_writing, build)
    result = await ctx.orchestrator.generate_json(
        ctx.resolution,
        prompt,
        validate=shaped,
        generation_config={"temperature": WRITING_TEMPERATURE},
    )
    ctx.tokens_used += result.tokens_used
    return shaped.built


async def _generate_writing(ctx: PracticeContext) -> WritingTestModel:
    task_type = ctx.request.writing_config.task_type or ctx.request.question_type

    if task_type == "FULL_TEST":
        task1 = await _generate_writing_task(ctx, 1)
        task2 = await _generate_writing_task(ctx, 2)
        return WritingTestModel(
            test_id=uuid.uuid4(),
            topic=ctx.topic,
            time_minutes=ctx.request.time_minutes,
            writing_task=FullWritingTestModel(
                id=uuid.uuid4(),
                task1=task1,
                task2=task2,
                time_minutes=ctx.request.time_minutes,
            ),
        )

    task = await _generate_writing_task(ctx, 1 if task_type == "TASK_1" else 2)
    return WritingTestModel(test_id=uuid.uuid4(), topic=ctx.topic, writing_task=task)


def _speaking_part(raw: dict[str, Any], index: int) -> SpeakingPartModel:
    part_number = raw.get("part_number") or index + 1
    return SpeakingPartModel(
        id=uuid.uuid4(),
        part_number=part_number,
        instruction=raw.get("instruction") or "",
        questions=[
            SpeakingQuestionModel(
                id=uuid.uuid4(),
                question_number=q.get("question_number") or q_index + 1,
                question_text=q.get("question_text") or "",
                sample_answer=q.get("sample_answer"),
            )
            for q_index, q in enumerate(raw.get("questions") or [])
        ],
        cue_card_topic=raw.get("cue_card_topic"),
        cue_card_content=raw.get("cue_card_content"),
        preparation_time_seconds=raw.get("preparation_time_seconds")
        or (60 if part_number == 2 else None),
        speaking_time_seconds=raw.get("speaking_time_seconds")
        or (120 if part_number == 2 else None),
        time_limit_seconds=raw.get("time_limit_seconds")
        or (300 if part_number in (1, 3) else None),
    )


async def _generate_speaking(ctx: PracticeContext) -> SpeakingTestModel:
    parts = prompts.speaking_parts_for(ctx.request.question_type)
    prompt = prompts.build_speaking_prompt(ctx.topic, ctx.request.difficulty.value, parts)
    shaped = ShapedPayload(
        validate_speaking,
        lambda p: [_speaking_part(part, i) for i, part in enumerate(p["parts"])],
    )
    result = await ctx.orchestrator.generate_json(ctx.resolution, prompt, validate=shaped)
    ctx.tokens_used += result.tokens_used

    return SpeakingTestModel(
        test_id=uuid.uuid4(),
        topic=result.data.get("topic") or ctx.topic,
        speaking_parts=shaped.built,
    )


GENERATORS = {
    PracticeModule.READING: _generate_reading,
    PracticeModule.LISTENING: _generate_listening,
    PracticeModule.WRITING: _generate_writing,
    PracticeModule.SPEAKING: _generate_speaking,
}
