from fastapi import APIRouter

from src.api.core.dependencies import CurrentUserAuthDep, HeaderApiKeyDep, KeyProviderDep
from src.api.core.messages import APIResponse, MessageCode
from src.api.speaking.requests import SpeakingSessionRequest
from src.api.speaking.schemas import SpeakingSessionModel, SpeakingSessionResponse
from src.modules.speaking.session import create_speaking_session

router = APIRouter(prefix="/speaking", tags=["speaking"])


@router.post("/session", response_model=SpeakingSessionResponse)
async def create_session(
    body: SpeakingSessionRequest,
    current_user: CurrentUserAuthDep,
    key_provider: KeyProviderDep,
    header_key: HeaderApiKeyDep,
) -> SpeakingSessionResponse:
    """Live examiner session config. Requires the caller's own Gemini key."""
    session = await create_speaking_session(
        current_user,
        key_provider,
        part_type=body.part_type,
        difficulty=body.difficulty,
        topic=body.topic,
        voice_name=body.voice_name,
        header_key=header_key,
    )
    data = SpeakingSessionModel(
        session_config=session.session_config,
        api_key=session.api_key,
        ws_endpoint=session.ws_endpoint,
        voice_name=session.voice_name,
    )
    return APIResponse.success(message_code=MessageCode.SESSION_CREATED, data=data)
