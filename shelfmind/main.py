"""shelfmind FastAPI application entry point.

Wires providers and services together via dependency injection.
:func:`build_components` is shared by the web application and the CLI;
:func:`create_app` builds the FastAPI app whose lifespan initializes the
vector store on startup and cancels running vectorizations on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from shelfmind import __version__
from shelfmind.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from shelfmind.api.routes import router as api_router
from shelfmind.api.websocket import websocket_vectorize_progress
from shelfmind.config.loader import load_config, load_settings
from shelfmind.config.settings import Settings
from shelfmind.interfaces.embedding_provider import IEmbeddingProvider
from shelfmind.pipeline.progress_tracker import ProgressTracker
from shelfmind.providers.embedding.fastembed_embedding_provider import (
    FastEmbedEmbeddingProvider,
)
from shelfmind.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from shelfmind.providers.reader.library_reader import LibraryDocumentReader
from shelfmind.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from shelfmind.services.chunker import TextChunker
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.services.retrieval_engine import RetrievalEngine
from shelfmind.services.vectorization_coordinator import VectorizationCoordinator
from shelfmind.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Embedding provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding backend.

    Priority: OpenAI/OpenAI-compatible (if an API key is set) -> local
    fastembed model.
    """
    if app_settings.get_embedding_backend() == "openai":
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider
    return FastEmbedEmbeddingProvider(model_name=app_settings.fastembed_model)


# ---------------------------------------------------------------------------
# DI assembly
# ---------------------------------------------------------------------------


def build_components(
    app_settings: Settings,
    config: dict[str, Any] | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
) -> dict[str, Any]:
    """Construct every provider and service.

    Returns a flat dict of named components; the web app stores them on
    ``app.state`` and the CLI uses them directly.
    """
    cfg = config or {}
    reader_cfg = cfg.get("reader", {})
    search_cfg = cfg.get("search", {})

    provider = embedding_provider or _build_embedding_provider(app_settings)
    embedding_client = EmbeddingClient(
        provider=provider,
        batch_limit=app_settings.embedding_batch_limit,
        max_attempts=app_settings.embedding_max_attempts,
        backoff_base=app_settings.embedding_backoff_base,
        backoff_max=app_settings.embedding_backoff_max,
        timeout=app_settings.embedding_timeout,
        query_cache_size=app_settings.query_cache_size,
        query_cache_ttl=app_settings.query_cache_ttl,
    )

    vector_store = SQLiteVectorStore(db_path=app_settings.db_path)
    reader = LibraryDocumentReader(
        library_dir=app_settings.library_dir,
        min_chapter_chars=reader_cfg.get("min_chapter_chars", 0),
    )
    chunker = TextChunker(
        max_tokens=app_settings.chunk_max_tokens,
        overlap_tokens=app_settings.chunk_overlap_tokens,
    )
    progress_tracker = ProgressTracker()

    coordinator = VectorizationCoordinator(
        reader=reader,
        chunker=chunker,
        embedding_client=embedding_client,
        vector_store=vector_store,
        progress_tracker=progress_tracker,
        batch_size=app_settings.vectorize_batch_size,
    )
    retrieval_engine = RetrievalEngine(
        vector_store=vector_store,
        embedding_client=embedding_client,
        semantic_weight=app_settings.hybrid_semantic_weight,
        keyword_weight=app_settings.hybrid_keyword_weight,
        default_top_k=app_settings.search_default_top_k,
        highlight_context_chars=search_cfg.get("highlight_context_chars", 50),
    )

    _logger.info(
        "components_built",
        embedding_provider=provider.get_provider_name(),
        dimension=provider.get_dimension(),
        vector_store=vector_store.get_provider_name(),
        db_path=app_settings.db_path,
    )

    return {
        "settings": app_settings,
        "config": cfg,
        "embedding_client": embedding_client,
        "vector_store": vector_store,
        "reader": reader,
        "chunker": chunker,
        "progress_tracker": progress_tracker,
        "coordinator": coordinator,
        "retrieval_engine": retrieval_engine,
    }


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    *components* replaces :func:`build_components` (tests pass prebuilt
    fakes).
    """
    s = app_settings or load_settings()
    cfg = load_config(settings=s)

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        built = components or build_components(s, cfg)
        for key, value in built.items():
            setattr(application.state, key, value)

        await built["vector_store"].initialize()
        _logger.info("app_startup", version=__version__, environment=s.app_env)

        yield

        await built["coordinator"].shutdown()
        _logger.info("app_shutdown")

    application = FastAPI(
        title="shelfmind API",
        version=__version__,
        description=(
            "Vectorize e-books into overlapping chunks with embeddings and "
            "answer semantic, keyword and hybrid searches over them."
        ),
        lifespan=_lifespan,
    )

    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=cfg.get("api", {}).get("cors_origins"))

    application.include_router(api_router)

    @application.websocket("/ws/vectorize/{document_id}")
    async def ws_vectorize(websocket: WebSocket, document_id: str) -> None:
        await websocket_vectorize_progress(websocket, document_id)

    return application


def main() -> None:
    """Run the API server with uvicorn."""
    s = load_settings()
    configure_logging(log_level=s.log_level, json_output=(s.app_env == "production"))
    uvicorn.run(
        create_app(s),
        host=s.app_host,
        port=s.app_port,
    )


if __name__ == "__main__":
    main()
