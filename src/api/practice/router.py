"""Practice test generation router."""

from fastapi import APIRouter

from src.api.core.dependencies import (
    AsyncSessionDep,
    AudioPipelineDep,
    CurrentUserAuthDep,
    HeaderApiKeyDep,
    KeyProviderDep,
    OrchestratorDep,
)
from src.api.core.messages import APIResponse, MessageCode
from src.api.practice.requests import GeneratePracticeRequest
from src.api.practice.schemas import PracticeTestResponse
from src.modules.practice.application.use_cases import generate_practice_test

router = APIRouter(prefix="/practice", tags=["practice"])


@router.post("/generate", response_model=PracticeTestResponse)
async def generate_practice(
    body: GeneratePracticeRequest,
    db: AsyncSessionDep,
    current_user: CurrentUserAuthDep,
    key_provider: KeyProviderDep,
    orchestrator: OrchestratorDep,
    audio: AudioPipelineDep,
    header_key: HeaderApiKeyDep,
) -> PracticeTestResponse:
    """Generate a reading, listening, writing or speaking practice test."""
    test = await generate_practice_test(
        db,
        current_user,
        body,
        key_provider=key_provider,
        orchestrator=orchestrator,
        audio=audio,
        header_key=header_key,
    )
    return APIResponse.success(message_code=MessageCode.TEST_GENERATED, data=test)
