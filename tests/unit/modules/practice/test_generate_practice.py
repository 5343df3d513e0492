"""Practice test generation use case tests."""

import base64

import pytest
from sqlalchemy import select

from src.api.core.exceptions.base import MalformedOutputError, NoKeyAvailableError
from src.api.practice.requests import GeneratePracticeRequest
from src.api.practice.schemas import (
    FullWritingTestModel,
    ListeningTestModel,
    ReadingTestModel,
    SpeakingTestModel,
    WritingTestModel,
)
from src.database import models
from src.database.models import GeminiDailyUsage
from src.modules.audio.synthesizer import AudioSynthesisPipeline
from src.modules.billing.credits.service import CreditLedgerService
from src.modules.generation.orchestrator import GenerationOrchestrator
from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.provider import KeyProvider
from src.modules.keys.secrets import UserSecretRepository
from src.modules.practice.application.use_cases import (
    display_transcript,
    generate_practice_test,
)
from tests.factories import ApiKeyFactory
from tests.utils.gemini import audio_response, bad_request, json_response, text_response

READING_PAYLOAD = {
    "passage": {"title": "Urban Beekeeping", "content": "A. Bees thrive in cities..."},
    "instruction": "Choose the correct letter, A, B, C or D.",
    "questions": [
        {
            "question_number": 1,
            "question_text": "Why do bees thrive in cities?",
            "options": ["A. Warmth", "B. Noise", "C. Traffic", "D. Rain"],
            "correct_answer": "A",
            "explanation": "Paragraph A mentions warmer temperatures.",
        },
        {
            "question_number": 2,
            "question_text": "What do urban hives produce?",
            "options": ["A. Wax", "B. Honey", "C. Pollen", "D. Silk"],
            "correct_answer": "B",
        },
    ],
}

DIALOGUE = (
    "Speaker1: Good morning, I'd like to join the sports centre.\n"
    "Speaker2: Of course. Can I take your full name?\n"
    "Speaker1: It's Tom Harris."
)

LISTENING_PAYLOAD = {
    "dialogue": DIALOGUE,
    "speaker_names": {"Speaker1": "Tom", "Speaker2": "Sarah"},
    "instruction": "Write NO MORE THAN TWO WORDS for each answer.",
    "questions": [
        {"question_number": 1, "question_text": "Surname: ______", "correct_answer": "Harris"},
    ],
}


@pytest.fixture
def key_provider(db_session, encryption_key) -> KeyProvider:
    return KeyProvider(
        UserSecretRepository(db_session), ApiKeyPoolRepository(db_session), encryption_key
    )


@pytest.fixture
def orchestrator(fake_gemini, db_session, gemini_settings, no_sleep) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        fake_gemini, ApiKeyPoolRepository(db_session), gemini_settings, sleep=no_sleep
    )


@pytest.fixture
def audio(fake_gemini, db_session, gemini_settings, no_sleep) -> AudioSynthesisPipeline:
    return AudioSynthesisPipeline(
        fake_gemini, ApiKeyPoolRepository(db_session), gemini_settings, sleep=no_sleep
    )


@pytest.fixture
def generate(db_session, current_user, key_provider, orchestrator, audio):
    async def _generate(header_key: str | None = None, **body):
        request = GeneratePracticeRequest.model_validate(body)
        return await generate_practice_test(
            db_session,
            current_user,
            request,
            key_provider=key_provider,
            orchestrator=orchestrator,
            audio=audio,
            header_key=header_key,
        )

    return _generate


async def credits_used(db_session, user_id) -> int:
    return (await CreditLedgerService(db_session).get_status(user_id)).credits_used


class TestReading:
    @pytest.mark.asyncio
    async def test_pool_funded_reading_is_charged(
        self, generate, fake_gemini, db_session, current_user
    ):
        await ApiKeyFactory.create_async(db_session)
        fake_gemini.queue(json_response(READING_PAYLOAD, tokens=1200))

        test = await generate(module="reading", topic="Urban wildlife", questionCount=2)

        assert isinstance(test, ReadingTestModel)
        assert test.topic == "Urban wildlife"
        assert test.passage.title == "Urban Beekeeping"
        group = test.question_groups[0]
        assert [q.correct_answer for q in group.questions] == ["A", "B"]
        assert group.options == {"options": READING_PAYLOAD["questions"][0]["options"]}
        assert "Urban wildlife" in fake_gemini.calls[0].prompt_text
        assert await credits_used(db_session, current_user.user_id) == 20

        usage = (await db_session.execute(select(GeminiDailyUsage))).scalar_one()
        assert (usage.tokens_used, usage.requests_count) == (1200, 1)

    @pytest.mark.asyncio
    async def test_failed_generation_refunds_credits(
        self, generate, fake_gemini, db_session, current_user
    ):
        await ApiKeyFactory.create_async(db_session)
        fake_gemini.handler = lambda model, key, body: json_response({"passage": {}})

        with pytest.raises(MalformedOutputError):
            await generate(module="reading")

        assert await credits_used(db_session, current_user.user_id) == 0

    @pytest.mark.asyncio
    async def test_misshapen_questions_fall_back_to_next_model(self, generate, fake_gemini):
        misshapen = {
            **READING_PAYLOAD,
            "questions": [{**READING_PAYLOAD["questions"][0], "question_number": "Q1"}],
        }
        fake_gemini.queue(json_response(misshapen), json_response(READING_PAYLOAD))

        test = await generate(header_key="AIzaHeaderKey", module="reading")

        assert [c.model for c in fake_gemini.calls] == ["gemini-2.5-flash", "gemini-2.5-pro"]
        assert [q.question_number for q in test.question_groups[0].questions] == [1, 2]

    @pytest.mark.asyncio
    async def test_user_key_is_never_charged(
        self, generate, fake_gemini, db_session, current_user
    ):
        fake_gemini.queue(json_response(READING_PAYLOAD))

        await generate(header_key="AIzaHeaderKey", module="reading")

        assert fake_gemini.calls[0].api_key == "AIzaHeaderKey"
        assert await credits_used(db_session, current_user.user_id) == 0

    @pytest.mark.asyncio
    async def test_without_any_key(self, generate, fake_gemini):
        with pytest.raises(NoKeyAvailableError):
            await generate(module="reading")

        assert fake_gemini.calls == []

    @pytest.mark.asyncio
    async def test_save_to_bank(self, generate, fake_gemini, db_session, current_user):
        fake_gemini.queue(json_response(READING_PAYLOAD))

        test = await generate(
            module="reading", topic="Bees", saveToBank=True, userApiKey="AIzaBodyKey"
        )

        preset = (await db_session.execute(select(models.TestPreset))).scalar_one()
        assert preset.module == "reading"
        assert not preset.is_published
        assert preset.created_by == current_user.user_id
        assert preset.payload["testId"] == str(test.test_id)


class TestListening:
    @pytest.mark.asyncio
    async def test_dialogue_with_stitched_audio(self, generate, fake_gemini):
        fake_gemini.queue(
            json_response(LISTENING_PAYLOAD),
            audio_response(b"AA"),
            audio_response(b"BB"),
            audio_response(b"CC"),
        )

        test = await generate(
            module="listening", questionType="FORM_COMPLETION", userApiKey="AIzaBodyKey"
        )

        assert isinstance(test, ListeningTestModel)
        assert base64.b64decode(test.audio_base64) == b"AABBCC"
        assert (test.audio_format, test.sample_rate) == ("pcm", 24000)
        assert test.transcript.startswith("Tom: Good morning")
        assert "Sarah: Of course." in test.transcript
        assert test.speaker_names == {"Speaker1": "Tom", "Speaker2": "Sarah"}

    @pytest.mark.asyncio
    async def test_audio_failure_falls_back_to_monologue(
        self, generate, fake_gemini, db_session, current_user
    ):
        await ApiKeyFactory.create_async(db_session)
        monologue = (
            "Tom Harris visited the sports centre this morning to join. "
            "The receptionist asked for his full name and he spelled it out."
        )
        fake_gemini.queue(
            json_response(LISTENING_PAYLOAD),
            bad_request(),
            text_response(monologue),
        )

        test = await generate(module="listening")

        assert test.audio_base64 is None
        assert test.transcript == monologue
        assert test.speaker_names == {"Speaker1": "Narrator"}
        assert len(test.question_groups[0].questions) == 1
        # The test itself was delivered, so the charge stands
        assert await credits_used(db_session, current_user.user_id) == 20

    @pytest.mark.asyncio
    async def test_single_speaker_has_no_rescue(self, generate, fake_gemini):
        fake_gemini.queue(json_response(LISTENING_PAYLOAD), bad_request())

        test = await generate(
            module="listening",
            userApiKey="AIzaBodyKey",
            listeningConfig={"speakerConfig": {"useTwoSpeakers": False, "speaker2": None}},
        )

        assert test.audio_base64 is None
        assert test.transcript.startswith("Tom: Good morning")
        assert len(fake_gemini.calls) == 2


class TestWritingAndSpeaking:
    @pytest.mark.asyncio
    async def test_full_writing_test(self, generate, fake_gemini):
        fake_gemini.queue(
            json_response(
                {
                    "instruction": "The chart shows energy use in four countries.",
                    "visual_type": "BAR_CHART",
                    "visualData": {"labels": ["UK", "US"], "values": [10, 20]},
                }
            ),
            json_response(
                {
                    "instruction": "Some people think cities should ban cars.",
                    "essay_type": "OPINION",
                }
            ),
        )

        test = await generate(
            module="writing",
            userApiKey="AIzaBodyKey",
            writingConfig={"taskType": "FULL_TEST", "task1VisualType": "BAR_CHART"},
            timeMinutes=60,
        )

        assert isinstance(test, WritingTestModel)
        full = test.writing_task
        assert isinstance(full, FullWritingTestModel)
        assert full.task1.chart_data == {"labels": ["UK", "US"], "values": [10, 20]}
        assert (full.task1.word_limit_min, full.task2.word_limit_min) == (150, 250)
        assert full.task2.essay_type == "OPINION"
        assert all(
            c.body["generationConfig"]["temperature"] == 0.2 for c in fake_gemini.calls
        )

    @pytest.mark.asyncio
    async def test_speaking_part_two_defaults(self, generate, fake_gemini):
        fake_gemini.queue(
            json_response(
                {
                    "topic": "Travel",
                    "parts": [
                        {
                            "part_number": 2,
                            "instruction": "Describe a journey you remember.",
                            "cue_card_topic": "A memorable journey",
                            "questions": [{"question_text": "Where did you go?"}],
                        }
                    ],
                }
            )
        )

        test = await generate(module="speaking", questionType="PART_2", userApiKey="AIzaBodyKey")

        assert isinstance(test, SpeakingTestModel)
        part = test.speaking_parts[0]
        assert part.part_number == 2
        assert (part.preparation_time_seconds, part.speaking_time_seconds) == (60, 120)
        assert part.time_limit_seconds is None
        assert part.questions[0].question_number == 1

    @pytest.mark.asyncio
    async def test_speaking_questions_as_strings_are_malformed(
        self, generate, fake_gemini, db_session, current_user
    ):
        await ApiKeyFactory.create_async(db_session)
        fake_gemini.handler = lambda model, key, body: json_response(
            {"parts": [{"part_number": 1, "questions": ["Do you work or study?"]}]}
        )

        with pytest.raises(MalformedOutputError):
            await generate(module="speaking")

        assert len(fake_gemini.calls) == 4
        assert await credits_used(db_session, current_user.user_id) == 0


def test_display_transcript_swaps_labels_for_names():
    transcript = "Speaker1: Hi.\nSpeaker2: Hello.\nSpeaker1: Bye."

    assert display_transcript(transcript, {"Speaker1": "Tom"}) == (
        "Tom: Hi.\nSpeaker2: Hello.\nTom: Bye."
    )
