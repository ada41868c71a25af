"""Request payload validation for the guide API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.guide_models import AudienceTone, CustomGuide

IMAGE_DATA_URL_PREFIX = "data:image/"


class CustomGuidePayload(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)

    def to_model(self) -> CustomGuide:
        return CustomGuide(name=self.name, description=self.description)


class AnalyzePayload(BaseModel):
    """Body of `POST /api/guide/analyze`."""

    model_config = ConfigDict(populate_by_name=True)

    tone: AudienceTone
    image_base64: str = Field(alias="imageBase64")
    custom_guide: Optional[CustomGuidePayload] = Field(default=None, alias="customGuide")

    @field_validator("image_base64")
    @classmethod
    def _require_image_data_url(cls, value: str) -> str:
        if not value.startswith(IMAGE_DATA_URL_PREFIX):
            raise ValueError("Expected base64-encoded image data URL.")
        return value


class FollowUpPayload(BaseModel):
    """Body of `POST /api/guide/follow-up`."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    question: str = Field(min_length=1)
    custom_guide: Optional[CustomGuidePayload] = Field(default=None, alias="customGuide")

    @field_validator("question")
    @classmethod
    def _require_visible_question(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Question is required")
        return value.strip()
