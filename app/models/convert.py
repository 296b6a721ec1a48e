from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConvertRequest(BaseModel):
    markdown: str | None = None


class ConvertResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    download_url: str = Field(alias="downloadUrl")
    source: str
    warning: str | None = None


class ErrorResponse(BaseModel):
    error: str


class CredentialStatusResponse(BaseModel):
    configured: bool
    valid: bool
    detail: str
    user: str | None = None


class AuthUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(alias="authUrl")
