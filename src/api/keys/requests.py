from pydantic import BaseModel, Field


class PreflightRequest(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1, max_length=200)

    model_config = {"populate_by_name": True}
