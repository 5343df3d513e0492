from typing import Literal

from pydantic import BaseModel, Field


class SpeakingSessionRequest(BaseModel):
    """Options for a live examiner session."""

    part_type: Literal["FULL_TEST", "PART_1", "PART_2", "PART_3"] = Field(
        default="FULL_TEST", alias="partType"
    )
    difficulty: str | None = None
    topic: str | None = Field(default=None, max_length=200)
    voice_name: str | None = Field(default=None, alias="voiceName")

    model_config = {"populate_by_name": True}
