from fastapi import APIRouter

from src.api.core.dependencies import CurrentUserAuthDep, GeminiClientDep
from src.api.core.messages import APIResponse, MessageCode
from src.api.keys.requests import PreflightRequest
from src.api.keys.schemas import PreflightModel, PreflightResponse
from src.modules.keys.preflight import check_api_key

router = APIRouter(prefix="/keys", tags=["keys"])


@router.post("/preflight", response_model=PreflightResponse)
async def preflight_key(
    body: PreflightRequest,
    client: GeminiClientDep,
    current_user: CurrentUserAuthDep,
) -> PreflightResponse:
    """Check a user-supplied Gemini key before it is saved."""
    fingerprint = await check_api_key(client, body.api_key)
    return APIResponse.success(
        message_code=MessageCode.API_KEY_VALID,
        data=PreflightModel(valid=True, fingerprint=fingerprint),
    )
