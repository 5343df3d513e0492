from typing import Any

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse


class SpeakingSessionModel(BaseModel):
    session_config: dict[str, Any] = Field(alias="sessionConfig")
    api_key: str = Field(alias="apiKey")
    ws_endpoint: str = Field(alias="wsEndpoint")
    voice_name: str = Field(alias="voiceName")

    model_config = {"populate_by_name": True}


SpeakingSessionResponse = APIResponse[SpeakingSessionModel]
