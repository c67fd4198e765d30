from __future__ import annotations

from pydantic import BaseModel, Field

from app.modules.study.documents import EncodedFile


class GenerateRequest(BaseModel):
    files: list[EncodedFile] = Field(
        ..., description="Exactly one PDF encoded as a base64 data URL"
    )


class TitleRequest(BaseModel):
    filename: str = Field(..., description="Name of the uploaded file")


class TitleResponse(BaseModel):
    title: str
