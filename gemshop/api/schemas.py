"""Pydantic request/response schemas for the gemshop API.

Request bodies use the camelCase keys the web client sends (``gemId``,
``documentIds``); response bodies mirror the stored records.

Validation failures on these schemas are turned into ``400 {"error": ...}``
responses by :func:`gemshop.api.middleware.validation_error_message`, which maps
the offending field to one of the fixed messages below.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from gemshop.models.documents import Document, Gem
from gemshop.models.rag import ChatSource

NonEmptyStr = Annotated[str, StringConstraints(strict=True, min_length=1)]

MESSAGE_REQUIRED = "Message is required."
GEM_ID_REQUIRED = "A valid Gem ID is required."
NAME_AND_DESCRIPTION_REQUIRED = "Name and description are required."
DOCUMENT_IDS_NOT_ARRAY = "documentIds must be an array."
FILE_REQUIRED = "No file provided."
INVALID_BODY = "Invalid request body."

# Request field (wire name) -> client-facing validation message.
FIELD_ERROR_MESSAGES: dict[str, str] = {
    "message": MESSAGE_REQUIRED,
    "gemId": GEM_ID_REQUIRED,
    "name": NAME_AND_DESCRIPTION_REQUIRED,
    "description": NAME_AND_DESCRIPTION_REQUIRED,
    "documentIds": DOCUMENT_IDS_NOT_ARRAY,
    "file": FILE_REQUIRED,
}


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    detail: str | None = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateGemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: NonEmptyStr
    description: NonEmptyStr
    document_ids: list[str] = Field(default_factory=list, alias="documentIds")
    rules: str | None = None


class LinkDocumentsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_ids: list[str] = Field(alias="documentIds")


class ChatRequest(BaseModel):
    """One chat turn addressed to a Gem."""

    model_config = ConfigDict(populate_by_name=True)

    message: NonEmptyStr
    gem_id: NonEmptyStr = Field(alias="gemId")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ImportResponse(BaseModel):
    """Acknowledgement that an upload was saved and queued."""

    accepted: bool = True
    filename: str
    message: str


class GemResponse(BaseModel):
    id: str
    tenant_id: str | None = None
    name: str
    description: str
    system_prompt: str | None = None
    rules: str | None = None
    created_at: str
    updated_at: str

    @classmethod
    def from_gem(cls, gem: Gem) -> GemResponse:
        return cls(
            id=gem.id,
            tenant_id=gem.tenant_id,
            name=gem.name,
            description=gem.description,
            system_prompt=gem.system_prompt,
            rules=gem.rules,
            created_at=gem.created_at.isoformat(),
            updated_at=gem.updated_at.isoformat(),
        )


class GemDetailResponse(GemResponse):
    """A Gem plus the ids of the documents in its retrieval scope."""

    document_ids: list[str] = Field(default_factory=list)


class DocumentResponse(BaseModel):
    id: str
    tenant_id: str | None = None
    name: str
    source_type: str
    source_ref: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: str

    @classmethod
    def from_document(cls, document: Document) -> DocumentResponse:
        return cls(
            id=document.id,
            tenant_id=document.tenant_id,
            name=document.name,
            source_type=document.source_type,
            source_ref=document.source_ref,
            metadata=document.metadata,
            created_at=document.created_at.isoformat(),
        )


class ChatResponse(BaseModel):
    response: str
    sources: list[ChatSource] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    store: dict[str, Any]
