"""FastAPI routes for vectorization and search.

Endpoint                                   Method  Description
──────────────────────────────────────────────────────────────────────────
/api/v1/documents                          GET     Documents with stored chunks
/api/v1/documents/{id}/vectorize           POST    Start a background run (202)
/api/v1/documents/{id}/vectorize           DELETE  Cancel the active run
/api/v1/documents/{id}/vectorize/status    GET     Current run status
/api/v1/documents/{id}/search              POST    Ranked search over the document
/api/v1/documents/{id}/chunks              DELETE  Remove stored chunks
/api/v1/health                             GET     Health check

Services are resolved from ``app.state`` (populated at startup in
``main.py``) through ``Annotated[..., Depends(...)]`` aliases.
Application errors propagate to ``ErrorHandlingMiddleware``, which maps
them to HTTP status codes.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request

from shelfmind import __version__
from shelfmind.api.schemas import (
    CancelResponse,
    DeleteChunksResponse,
    DocumentListResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    VectorizationStatusResponse,
)
from shelfmind.interfaces.vector_store_provider import IVectorStoreProvider
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.services.retrieval_engine import RetrievalEngine, parse_search_mode
from shelfmind.services.vectorization_coordinator import VectorizationCoordinator
from shelfmind.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["shelfmind"])


def _get_coordinator(request: Request) -> VectorizationCoordinator:
    return request.app.state.coordinator


def _get_retrieval_engine(request: Request) -> RetrievalEngine:
    return request.app.state.retrieval_engine


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    return request.app.state.vector_store


def _get_embedding_client(request: Request) -> EmbeddingClient:
    return request.app.state.embedding_client


CoordinatorDep = Annotated[VectorizationCoordinator, Depends(_get_coordinator)]
RetrievalDep = Annotated[RetrievalEngine, Depends(_get_retrieval_engine)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]
EmbeddingClientDep = Annotated[EmbeddingClient, Depends(_get_embedding_client)]


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    summary="List documents with stored chunks",
)
async def list_documents(vector_store: VectorStoreDep) -> DocumentListResponse:
    return DocumentListResponse(documents=await vector_store.list_documents())


@router.post(
    "/documents/{document_id}/vectorize",
    response_model=VectorizationStatusResponse,
    status_code=202,
    summary="Start vectorizing a document",
)
async def start_vectorization(
    document_id: str,
    coordinator: CoordinatorDep,
) -> VectorizationStatusResponse:
    """Register a run and return immediately; poll status or use the WebSocket."""
    status = await coordinator.start_vectorization(document_id)
    return VectorizationStatusResponse.from_status(status)


@router.delete(
    "/documents/{document_id}/vectorize",
    response_model=CancelResponse,
    summary="Cancel an active vectorization run",
)
async def cancel_vectorization(
    document_id: str,
    coordinator: CoordinatorDep,
) -> CancelResponse:
    cancelled = coordinator.cancel_vectorization(document_id)
    return CancelResponse(document_id=document_id, cancelled=cancelled)


@router.get(
    "/documents/{document_id}/vectorize/status",
    response_model=VectorizationStatusResponse,
    summary="Get vectorization status",
)
async def get_vectorization_status(
    document_id: str,
    coordinator: CoordinatorDep,
) -> VectorizationStatusResponse:
    status = await coordinator.get_vectorization_status(document_id)
    return VectorizationStatusResponse.from_status(status)


@router.post(
    "/documents/{document_id}/search",
    response_model=SearchResponse,
    summary="Search a document",
)
async def search_document(
    document_id: str,
    body: SearchRequest,
    engine: RetrievalDep,
) -> SearchResponse:
    mode = parse_search_mode(body.mode)
    results = await engine.search(
        document_id,
        body.query,
        mode=mode,
        top_k=body.top_k,
        min_score=body.min_score,
    )
    return SearchResponse(
        document_id=document_id,
        query=body.query,
        mode=mode.value,
        results=results,
    )


@router.delete(
    "/documents/{document_id}/chunks",
    response_model=DeleteChunksResponse,
    summary="Delete a document's stored chunks",
)
async def delete_document_chunks(
    document_id: str,
    coordinator: CoordinatorDep,
) -> DeleteChunksResponse:
    deleted = await coordinator.delete_document(document_id)
    _logger.info("document_purged", document_id=document_id, deleted=deleted)
    return DeleteChunksResponse(document_id=document_id, deleted=deleted)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(
    coordinator: CoordinatorDep,
    vector_store: VectorStoreDep,
    embedding_client: EmbeddingClientDep,
) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        embedding_provider=embedding_client.provider_name,
        vector_store=vector_store.get_provider_name(),
        active_runs=coordinator.active_documents(),
    )
