"""Keys API schemas."""

from pydantic import BaseModel

from src.api.core.messages import APIResponse


class PreflightModel(BaseModel):
    valid: bool
    fingerprint: str


PreflightResponse = APIResponse[PreflightModel]
