"""Evaluation router: grading and answer explanations."""

from fastapi import APIRouter

from src.api.core.dependencies import (
    AsyncSessionDep,
    CurrentUserAuthDep,
    HeaderApiKeyDep,
    KeyProviderDep,
    OrchestratorDep,
)
from src.api.core.messages import APIResponse, MessageCode
from src.api.evaluation.requests import (
    EvaluateSpeakingRequest,
    EvaluateWritingRequest,
    ExplainAnswerRequest,
)
from src.api.evaluation.schemas import (
    ExplanationResponse,
    SpeakingEvaluationResponse,
    WritingEvaluationResponse,
)
from src.modules.evaluation.application.use_cases import (
    evaluate_speaking,
    evaluate_writing,
    explain_answer,
)

router = APIRouter(prefix="/evaluation", tags=["evaluation"])


@router.post("/writing", response_model=WritingEvaluationResponse)
async def evaluate_writing_endpoint(
    body: EvaluateWritingRequest,
    db: AsyncSessionDep,
    current_user: CurrentUserAuthDep,
    key_provider: KeyProviderDep,
    orchestrator: OrchestratorDep,
    header_key: HeaderApiKeyDep,
) -> WritingEvaluationResponse:
    evaluation = await evaluate_writing(
        db, current_user, body, key_provider, orchestrator, header_key=header_key
    )
    return APIResponse.success(message_code=MessageCode.EVALUATION_COMPLETED, data=evaluation)


@router.post("/speaking", response_model=SpeakingEvaluationResponse)
async def evaluate_speaking_endpoint(
    body: EvaluateSpeakingRequest,
    db: AsyncSessionDep,
    current_user: CurrentUserAuthDep,
    key_provider: KeyProviderDep,
    orchestrator: OrchestratorDep,
    header_key: HeaderApiKeyDep,
) -> SpeakingEvaluationResponse:
    """Grade recorded speaking answers sent as base64 audio."""
    evaluation = await evaluate_speaking(
        db, current_user, body, key_provider, orchestrator, header_key=header_key
    )
    return APIResponse.success(message_code=MessageCode.EVALUATION_COMPLETED, data=evaluation)


@router.post("/explain", response_model=ExplanationResponse)
async def explain_answer_endpoint(
    body: ExplainAnswerRequest,
    db: AsyncSessionDep,
    current_user: CurrentUserAuthDep,
    key_provider: KeyProviderDep,
    orchestrator: OrchestratorDep,
    header_key: HeaderApiKeyDep,
) -> ExplanationResponse:
    explanation = await explain_answer(
        db, current_user, body, key_provider, orchestrator, header_key=header_key
    )
    return APIResponse.success(message_code=MessageCode.EXPLANATION_GENERATED, data=explanation)
