"""Credits API schemas."""

from pydantic import BaseModel

from src.api.core.messages import APIResponse


class CreditStatusModel(BaseModel):
    credits_used: int
    credits_remaining: int
    limit: int
    costs: dict[str, int]

    model_config = {"from_attributes": True}


CreditStatusResponse = APIResponse[CreditStatusModel]
