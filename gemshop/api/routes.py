"""FastAPI routes for the gemshop API.

Service dependencies are resolved from ``app.state`` via ``Depends`` using
the ``Annotated`` pattern; ``main.py`` populates ``app.state`` during the
lifespan startup.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                         Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/import                   POST    Save upload, queue ingestion (202)
# /api/v1/documents                GET     All documents, newest first
# /api/v1/gems                     POST    Create a Gem scoped to documents
# /api/v1/gems                     GET     All Gems, newest first
# /api/v1/gems/{gem_id}            GET     One Gem + its linked document ids
# /api/v1/gems/{gem_id}/documents  POST    Add documents to a Gem's scope
# /api/v1/chat                     POST    One RAG chat turn against a Gem
# /api/v1/health                   GET     Provider status + store counts
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request, UploadFile

from gemshop import __version__
from gemshop.api.schemas import (
    FILE_REQUIRED,
    ChatRequest,
    ChatResponse,
    CreateGemRequest,
    DocumentResponse,
    ErrorResponse,
    GemDetailResponse,
    GemResponse,
    HealthResponse,
    ImportResponse,
    LinkDocumentsRequest,
)
from gemshop.interfaces.document_store import IDocumentStore
from gemshop.pipeline.ingestion_queue import IngestionQueue
from gemshop.services.chat_service import ChatService
from gemshop.services.gem_service import GemService
from gemshop.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)

router = APIRouter(prefix="/api/v1")

_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_document_store(request: Request) -> IDocumentStore:
    return request.app.state.document_store


def _get_gem_service(request: Request) -> GemService:
    return request.app.state.gem_service


def _get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _get_ingestion_queue(request: Request) -> IngestionQueue:
    return request.app.state.ingestion_queue


def _get_upload_dir(request: Request) -> Path:
    return Path(request.app.state.settings.upload_dir)


def _get_provider_status(request: Request) -> dict[str, Any]:
    return request.app.state.provider_status


StoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]
GemServiceDep = Annotated[GemService, Depends(_get_gem_service)]
ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]
QueueDep = Annotated[IngestionQueue, Depends(_get_ingestion_queue)]
UploadDirDep = Annotated[Path, Depends(_get_upload_dir)]
ProviderStatusDep = Annotated[dict[str, Any], Depends(_get_provider_status)]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/import",
    response_model=ImportResponse,
    status_code=202,
    responses={400: {"model": ErrorResponse}},
    summary="Upload a file and queue it for ingestion",
)
async def import_file(
    file: UploadFile,
    queue: QueueDep,
    upload_dir: UploadDirDep,
) -> ImportResponse:
    """Save the upload to disk and hand it to the background ingestion queue."""
    filename = Path(file.filename or "").name
    if not filename:
        raise ValidationError(FILE_REQUIRED)

    chunks: list[bytes] = []
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    data = b"".join(chunks)

    await asyncio.to_thread(upload_dir.mkdir, parents=True, exist_ok=True)
    # Prefix keeps concurrent uploads of the same name from clobbering each other.
    destination = upload_dir / f"{uuid.uuid4().hex}_{filename}"
    await asyncio.to_thread(destination.write_bytes, data)

    queue.submit(destination, filename)
    logger.info("upload_accepted", filename=filename, size=len(data), path=str(destination))
    return ImportResponse(
        filename=filename,
        message="File upload received. Ingestion process has started in the background.",
    )


@router.get("/documents", response_model=list[DocumentResponse], summary="List documents")
async def list_documents(store: StoreDep) -> list[DocumentResponse]:
    documents = await store.list_documents()
    return [DocumentResponse.from_document(doc) for doc in documents]


# ---------------------------------------------------------------------------
# Gems
# ---------------------------------------------------------------------------


@router.post(
    "/gems",
    response_model=GemResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Create a Gem",
)
async def create_gem(body: CreateGemRequest, gems: GemServiceDep) -> GemResponse:
    gem = await gems.create_gem(
        name=body.name,
        description=body.description,
        document_ids=body.document_ids,
        rules=body.rules,
    )
    return GemResponse.from_gem(gem)


@router.get("/gems", response_model=list[GemResponse], summary="List Gems")
async def list_gems(gems: GemServiceDep) -> list[GemResponse]:
    return [GemResponse.from_gem(gem) for gem in await gems.list_gems()]


@router.get(
    "/gems/{gem_id}",
    response_model=GemDetailResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a Gem and its linked documents",
)
async def get_gem(gem_id: str, gems: GemServiceDep) -> GemDetailResponse:
    gem = await gems.get_gem(gem_id)
    document_ids = await gems.get_gem_document_ids(gem_id)
    return GemDetailResponse(
        **GemResponse.from_gem(gem).model_dump(),
        document_ids=document_ids,
    )


@router.post(
    "/gems/{gem_id}/documents",
    response_model=GemDetailResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Add documents to a Gem's scope",
)
async def link_gem_documents(
    gem_id: str,
    body: LinkDocumentsRequest,
    gems: GemServiceDep,
) -> GemDetailResponse:
    document_ids = await gems.link_documents(gem_id, body.document_ids)
    gem = await gems.get_gem(gem_id)
    return GemDetailResponse(
        **GemResponse.from_gem(gem).model_dump(),
        document_ids=document_ids,
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Ask a Gem a question",
)
async def chat(body: ChatRequest, chat_service: ChatServiceDep) -> ChatResponse:
    result = await chat_service.answer(gem_id=body.gem_id, message=body.message)
    return ChatResponse(response=result.response, sources=result.sources)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(
    store: StoreDep,
    queue: QueueDep,
    provider_status: ProviderStatusDep,
) -> HealthResponse:
    stats = await store.get_stats()
    return HealthResponse(
        status="healthy",
        version=__version__,
        providers=provider_status,
        store={
            "provider": store.get_provider_name(),
            **stats.model_dump(),
            "pending_ingestions": queue.pending,
        },
    )
