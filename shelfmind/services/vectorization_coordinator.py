"""Per-document vectorization runs: chunk, embed, persist, report.

Each run walks the state machine

    IDLE → CHUNKING → EMBEDDING → COMPLETE
              ↘           ↘
          FAILED / CANCELLED

and publishes every transition (plus every embedded batch) through the
:class:`~shelfmind.pipeline.progress_tracker.ProgressTracker`, which is
also where the coordinator keeps the latest status of each document.

At most one run per document is active at a time.  The exclusion token is
the ``_jobs`` entry for the document: it is taken synchronously in
:meth:`VectorizationCoordinator.start_vectorization` before the first
``await`` and released when the run's task finishes, so two callers can
never both pass the check.

Runs are resumable.  Chunks are persisted without embeddings before any
embedding call, and every embedded batch is persisted as soon as it
returns.  A later run compares a content hash of the chapters with the
hash stored next to the chunks, and a fresh chunking pass with the
stored chunks; when both match, only the chunks that still lack an
embedding are sent to the embedding client.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from shelfmind.interfaces.document_reader import IDocumentReader
from shelfmind.interfaces.vector_store_provider import IVectorStoreProvider
from shelfmind.models.rag import (
    Chapter,
    Chunk,
    VectorizationState,
    VectorizationStatus,
)
from shelfmind.pipeline.progress_tracker import ProgressTracker
from shelfmind.services.chunker import TextChunker, compute_content_hash
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.utils.errors import AlreadyRunning, DocumentUnreadable

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_BATCH_SIZE = 16


@dataclass
class _Job:
    """Bookkeeping for one active run."""

    document_id: str
    cancel_requested: bool = False
    task: asyncio.Task | None = field(default=None, repr=False)


class VectorizationCoordinator:
    """Runs and tracks vectorization for any number of documents.

    Parameters
    ----------
    reader:
        Supplies a document's chapters.
    chunker:
        Splits chapters into chunks.
    embedding_client:
        Embeds chunk batches (retry/timeout handled there).
    vector_store:
        Durable chunk storage.
    progress_tracker:
        Receives every status change; a private tracker is created when
        none is given.
    batch_size:
        Chunks per embedding call (default 16).
    """

    def __init__(
        self,
        reader: IDocumentReader,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        vector_store: IVectorStoreProvider,
        progress_tracker: ProgressTracker | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if batch_size > embedding_client.batch_limit:
            raise ValueError(
                f"batch_size {batch_size} exceeds the embedding batch limit "
                f"{embedding_client.batch_limit}"
            )
        self._reader = reader
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._store = vector_store
        self._tracker = progress_tracker or ProgressTracker()
        self._batch_size = batch_size
        self._jobs: dict[str, _Job] = {}

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start_vectorization(self, document_id: str) -> VectorizationStatus:
        """Start a background run for *document_id*.

        Returns once the run is registered and the document's chapters
        have been read; chunking and embedding continue in a background
        task.

        Raises
        ------
        AlreadyRunning
            If a run for the document is active.  The active run's status
            is left untouched.
        DocumentUnreadable
            If the reader cannot supply chapters.  The run is recorded as
            ``FAILED``; so is any other error the reader raises, which is
            then re-raised unchanged.
        """
        if document_id in self._jobs:
            raise AlreadyRunning(
                message=f"Vectorization is already running for {document_id!r}",
            )
        job = _Job(document_id=document_id)
        self._jobs[document_id] = job

        try:
            await self._publish(document_id, VectorizationState.CHUNKING)
            try:
                chapters = await self._reader.get_chapters(document_id)
            except Exception as exc:
                event = (
                    "vectorization_document_unreadable"
                    if isinstance(exc, DocumentUnreadable)
                    else "vectorization_read_failed"
                )
                logger.error(
                    event,
                    document_id=document_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await self._publish(
                    document_id, VectorizationState.FAILED, error=_describe(exc)
                )
                raise
        except BaseException:
            self._release(job)
            raise

        job.task = asyncio.create_task(
            self._run(job, chapters), name=f"vectorize:{document_id}"
        )
        logger.info("vectorization_started", document_id=document_id, chapters=len(chapters))
        return self._tracker.get_status(document_id)

    async def run_vectorization(self, document_id: str) -> VectorizationStatus:
        """Start a run and wait until it reaches a terminal state."""
        await self.start_vectorization(document_id)
        return await self.wait_for(document_id)

    async def wait_for(self, document_id: str) -> VectorizationStatus:
        """Wait for the active run of *document_id* (if any) and return its status."""
        job = self._jobs.get(document_id)
        if job is not None and job.task is not None:
            await asyncio.shield(job.task)
        return await self.get_vectorization_status(document_id)

    def cancel_vectorization(self, document_id: str) -> bool:
        """Request cooperative cancellation.

        The flag is checked between embedding batches; an in-flight batch
        finishes (and is persisted) first.  Returns ``False`` when no run
        is active, which is a no-op.
        """
        job = self._jobs.get(document_id)
        if job is None:
            return False
        job.cancel_requested = True
        logger.info("vectorization_cancel_requested", document_id=document_id)
        return True

    async def get_vectorization_status(self, document_id: str) -> VectorizationStatus:
        """Return the current status of *document_id*.

        The status of the latest run in this process wins.  Without one,
        the status is derived from the store: no chunks → ``IDLE`` 0/0,
        every chunk embedded → ``COMPLETE``, otherwise ``IDLE`` with the
        stored counts.
        """
        status = self._tracker.get_status(document_id)
        if status is not None:
            return status

        counts = await self._store.count(document_id)
        if counts.total > 0 and counts.with_embedding == counts.total:
            state = VectorizationState.COMPLETE
        else:
            state = VectorizationState.IDLE
        return VectorizationStatus(
            document_id=document_id,
            state=state,
            total_chunks=counts.total,
            processed_chunks=counts.with_embedding,
        )

    async def delete_document(self, document_id: str) -> int:
        """Remove every stored chunk of *document_id*.

        Raises
        ------
        AlreadyRunning
            If a run for the document is active.
        """
        if document_id in self._jobs:
            raise AlreadyRunning(
                message=f"Cannot delete {document_id!r} while vectorization is running",
            )
        deleted = await self._store.delete_document(document_id)
        self._tracker.clear(document_id)
        return deleted

    def active_documents(self) -> list[str]:
        """Return the ids of documents with an active run."""
        return sorted(self._jobs)

    async def shutdown(self) -> None:
        """Cancel every active run and wait for the tasks to finish."""
        jobs = list(self._jobs.values())
        for job in jobs:
            job.cancel_requested = True
            if job.task is not None:
                job.task.cancel()
        tasks = [job.task for job in jobs if job.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("coordinator_shutdown", cancelled_runs=len(jobs))

    # ------------------------------------------------------------------
    # Run body
    # ------------------------------------------------------------------

    async def _run(self, job: _Job, chapters: list[Chapter]) -> None:
        document_id = job.document_id
        total = 0
        processed = 0
        try:
            pending, total, processed = await self._prepare_chunks(document_id, chapters)
            await self._publish(document_id, VectorizationState.CHUNKING, total, processed)

            if job.cancel_requested:
                await self._cancelled(document_id, total, processed)
                return

            await self._publish(document_id, VectorizationState.EMBEDDING, total, processed)

            for start in range(0, len(pending), self._batch_size):
                if job.cancel_requested:
                    await self._cancelled(document_id, total, processed)
                    return

                batch = pending[start : start + self._batch_size]
                vectors = await self._embedding_client.embed_batch([c.content for c in batch])
                embedded = [
                    chunk.model_copy(update={"embedding": vector})
                    for chunk, vector in zip(batch, vectors)
                ]
                await self._store.put_chunks(document_id, embedded)

                processed += len(batch)
                logger.debug(
                    "vectorization_batch_embedded",
                    document_id=document_id,
                    batch=start // self._batch_size,
                    processed=processed,
                    total=total,
                )
                await self._publish(document_id, VectorizationState.EMBEDDING, total, processed)

            await self._publish(document_id, VectorizationState.COMPLETE, total, processed)
            logger.info("vectorization_complete", document_id=document_id, total_chunks=total)

        except asyncio.CancelledError:
            # Task cancelled by shutdown(); persisted work is kept.
            await self._cancelled(document_id, total, processed)
            raise
        except Exception as exc:
            logger.error(
                "vectorization_failed",
                document_id=document_id,
                processed=processed,
                total=total,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await self._publish(
                document_id,
                VectorizationState.FAILED,
                total,
                processed,
                error=_describe(exc),
            )
        finally:
            self._release(job)

    async def _prepare_chunks(
        self,
        document_id: str,
        chapters: list[Chapter],
    ) -> tuple[list[Chunk], int, int]:
        """Chunk *chapters* and reconcile with what the store already holds.

        Returns ``(chunks still needing an embedding, total, already embedded)``.
        """
        fresh = self._chunker.chunk(document_id, chapters)
        content_hash = compute_content_hash(chapters)

        stored_hash = await self._store.get_content_hash(document_id)
        stored = await self._store.scan(document_id) if stored_hash == content_hash else []

        if stored and self._is_resumable(fresh, stored):
            pending = [chunk for chunk in stored if not chunk.has_embedding]
            processed = len(stored) - len(pending)
            logger.info(
                "vectorization_resumed",
                document_id=document_id,
                total_chunks=len(stored),
                already_embedded=processed,
            )
            return pending, len(stored), processed

        deleted = await self._store.delete_document(document_id)
        if deleted:
            logger.info("stale_chunks_deleted", document_id=document_id, deleted=deleted)
        await self._store.put_chunks(document_id, fresh)
        await self._store.set_content_hash(document_id, content_hash)
        return fresh, len(fresh), 0

    def _is_resumable(self, fresh: list[Chunk], stored: list[Chunk]) -> bool:
        """Stored chunks can be reused if they match a fresh pass one for one.

        Besides the ids, the text and anchors of every pair must agree, so
        a change of chunk size or overlap forces a fresh run even though
        the chapter hash is unchanged.
        """
        if len(fresh) != len(stored):
            return False
        if any(_chunk_shape(a) != _chunk_shape(b) for a, b in zip(fresh, stored)):
            return False
        dimension = self._embedding_client.dimension
        return all(
            chunk.embedding is None or len(chunk.embedding) == dimension for chunk in stored
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _publish(
        self,
        document_id: str,
        state: VectorizationState,
        total: int = 0,
        processed: int = 0,
        error: str | None = None,
    ) -> None:
        await self._tracker.update(
            VectorizationStatus(
                document_id=document_id,
                state=state,
                total_chunks=total,
                processed_chunks=processed,
                error=error,
            )
        )

    async def _cancelled(self, document_id: str, total: int, processed: int) -> None:
        logger.info(
            "vectorization_cancelled",
            document_id=document_id,
            processed=processed,
            total=total,
        )
        await self._publish(document_id, VectorizationState.CANCELLED, total, processed)

    def _release(self, job: _Job) -> None:
        if self._jobs.get(job.document_id) is job:
            del self._jobs[job.document_id]


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _chunk_shape(chunk: Chunk) -> tuple:
    """Everything about a chunk except its embedding."""
    return (
        chunk.id,
        chunk.chapter_title,
        chunk.content,
        chunk.token_count,
        chunk.start_anchor,
        chunk.end_anchor,
    )
