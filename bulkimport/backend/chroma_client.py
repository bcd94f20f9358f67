"""
ChromaDB backend adapter for the bulk import pipeline.

Provides:
    - Remote mode: HTTP client against the first reachable host:port endpoint
    - Embedded mode: persistent client owning a local store
    - Bulk writes with per-document outcomes
    - Collection counts scoped by document type
"""

import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Any

import chromadb
from chromadb.api import CreateCollectionConfiguration
from chromadb.api.collection_configuration import CreateHNSWConfiguration
from chromadb.config import Settings
from chromadb.errors import NotFoundError
from chromadb.utils.embedding_functions import DefaultEmbeddingFunction
from chromadb.utils.embedding_functions.openai_embedding_function import (
    OpenAIEmbeddingFunction,
)

from bulkimport.backend.base import (
    BackendAdapter,
    BackendConnectionError,
    CollectionNotFoundError,
)
from bulkimport.models import Batch, BatchOutcome, Document, DocumentOutcome

logger = logging.getLogger("bulk_import.chroma_client")

OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"
COUNT_PAGE_SIZE = 10_000


def build_embedding_function(name: str = "default"):
    """
    Create the embedding function used for new records.

    Args:
        name: "default" (bundled MiniLM model) or "openai"

    Returns:
        Chroma embedding function

    Raises:
        ValueError: If the name is unknown
    """
    if name == "default":
        return DefaultEmbeddingFunction()
    if name == "openai":
        return OpenAIEmbeddingFunction(model_name=OPENAI_EMBEDDING_MODEL)
    raise ValueError(f"Unknown embedding function: {name}")


class ChromaBackend(BackendAdapter):
    """
    Backend adapter writing one target collection through a Chroma client.

    Chroma makes a write visible as soon as ``add`` returns, so ``refresh``
    has nothing to do; counts still go through the same reconciliation path.
    """

    def __init__(
        self,
        client: Any,
        collection: str,
        doc_type: str | None = None,
        embedding_function: Any = None,
        description: str = "",
    ):
        """
        Wrap an already connected Chroma client.

        Args:
            client: chromadb client (HttpClient, PersistentClient, ...)
            collection: Collection that ``submit_batch`` writes to
            doc_type: Document-type label stored on every record
            embedding_function: Embedding function for created collections
            description: Connection description for log messages
        """
        self.client = client
        self.collection_name = collection
        self.doc_type = doc_type
        self.embedding_function = embedding_function
        self.description = description or type(client).__name__
        self._collections: dict[str, Any] = {}
        self._lock = threading.Lock()

    @classmethod
    def connect_remote(
        cls,
        endpoints: list[tuple[str, int]],
        collection: str,
        doc_type: str | None = None,
        embedding_function: Any = None,
    ) -> "ChromaBackend":
        """
        Connect to a running Chroma server.

        Endpoints are tried in order; the first one answering a heartbeat is
        used.

        Raises:
            BackendConnectionError: If no endpoint is reachable
        """
        if not endpoints:
            raise BackendConnectionError("No remote endpoints configured")

        errors = []
        for host, port in endpoints:
            logger.debug(f"Trying Chroma endpoint {host}:{port}")
            try:
                client = chromadb.HttpClient(
                    host=host,
                    port=port,
                    settings=Settings(anonymized_telemetry=False),
                )
                client.heartbeat()
            except Exception as e:
                logger.warning(f"Chroma endpoint {host}:{port} unreachable: {e}")
                errors.append(f"{host}:{port} ({e})")
                continue

            logger.info(f"Connected to Chroma server at {host}:{port}")
            return cls(
                client,
                collection,
                doc_type=doc_type,
                embedding_function=embedding_function,
                description=f"remote {host}:{port}",
            )

        raise BackendConnectionError(
            "No Chroma endpoint reachable: " + ", ".join(errors)
        )

    @classmethod
    def connect_embedded(
        cls,
        path: Path,
        collection: str,
        doc_type: str | None = None,
        embedding_function: Any = None,
    ) -> "ChromaBackend":
        """
        Open a local persistent Chroma store inside this process.

        Raises:
            BackendConnectionError: If the store cannot be opened
        """
        try:
            path.mkdir(parents=True, exist_ok=True)
            client = chromadb.PersistentClient(
                path=str(path),
                settings=Settings(anonymized_telemetry=False),
            )
        except Exception as e:
            raise BackendConnectionError(
                f"Failed to open embedded Chroma store at {path}: {e}"
            ) from e

        logger.info(f"Embedded Chroma store opened at {path}")
        return cls(
            client,
            collection,
            doc_type=doc_type,
            embedding_function=embedding_function,
            description=f"embedded {path}",
        )

    def _existing_collection(self, name: str):
        with self._lock:
            cached = self._collections.get(name)
        if cached is not None:
            return cached

        try:
            found = self.client.get_collection(
                name=name,
                embedding_function=self.embedding_function,
            )
        except NotFoundError as e:
            raise CollectionNotFoundError(name) from e

        with self._lock:
            return self._collections.setdefault(name, found)

    def _writable_collection(self, name: str):
        with self._lock:
            cached = self._collections.get(name)
            if cached is not None:
                return cached

            config = CreateCollectionConfiguration(
                hnsw=CreateHNSWConfiguration(space="cosine"),
                embedding_function=self.embedding_function,
            )
            created = self.client.get_or_create_collection(
                name=name,
                configuration=config,
                embedding_function=self.embedding_function,
                metadata={"description": "Bulk imported documents"},
            )
            logger.info(f"Collection '{name}' ready for writes")
            self._collections[name] = created
            return created

    def count_in_scope(self, collection: str, doc_type: str | None = None) -> int:
        """
        Count documents in a collection, optionally by document type.

        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        target = self._existing_collection(collection)

        if doc_type is None:
            return target.count()

        total = 0
        offset = 0
        while True:
            page = target.get(
                where={"doc_type": doc_type},
                include=[],
                limit=COUNT_PAGE_SIZE,
                offset=offset,
            )
            found = len(page["ids"])
            total += found
            if found < COUNT_PAGE_SIZE:
                return total
            offset += found

    def refresh(self, collection: str) -> None:
        logger.debug(f"Refresh '{collection}': writes are visible once acknowledged")

    def submit_batch(self, batch: Batch) -> BatchOutcome:
        """
        Insert a batch into the target collection.

        Payloads that are not valid UTF-8 are rejected per document; the rest
        of the batch is written with a single ``add`` call.

        Args:
            batch: Sealed batch

        Returns:
            Per-document outcomes in batch order

        Raises:
            Exception: Whatever the Chroma client raises for the write
        """
        start = time.monotonic()
        outcomes: list[DocumentOutcome | None] = [None] * len(batch)
        ids: list[str] = []
        texts: list[str] = []
        metadatas: list[dict] = []

        for position, doc in enumerate(batch.documents):
            try:
                text = doc.payload.decode("utf-8")
            except UnicodeDecodeError as e:
                outcomes[position] = DocumentOutcome(
                    document=doc,
                    error=f"payload is not valid UTF-8 ({e.reason} at byte {e.start})",
                )
                continue

            ids.append(doc.doc_id or uuid.uuid4().hex)
            texts.append(text)
            metadatas.append(self._record_metadata(batch, doc))

        if ids:
            self._writable_collection(self.collection_name).add(
                ids=ids,
                documents=texts,
                metadatas=metadatas,
            )

        items = tuple(
            outcome if outcome is not None else DocumentOutcome(document=doc)
            for outcome, doc in zip(outcomes, batch.documents)
        )
        took_ms = int((time.monotonic() - start) * 1000)
        return BatchOutcome(batch=batch, items=items, took_ms=took_ms)

    def _record_metadata(self, batch: Batch, doc: Document) -> dict:
        # Chroma metadata values must be flat str/int/float/bool
        metadata: dict[str, Any] = {"batch_id": batch.batch_id}
        if self.doc_type:
            metadata["doc_type"] = self.doc_type
        if doc.source_path is not None:
            metadata["source_path"] = str(doc.source_path)
        if doc.line_index is not None:
            metadata["line_index"] = doc.line_index
        return metadata

    def close(self) -> None:
        logger.debug(f"Closing Chroma backend ({self.description})")
        with self._lock:
            self._collections.clear()


def create_backend(settings) -> ChromaBackend:
    """
    Connect to Chroma in the mode selected by the settings.

    Args:
        settings: ImportSettings for the run

    Returns:
        Backend writing to the settings' collection

    Raises:
        BackendConnectionError: If the connection cannot be established
    """
    embedding_function = build_embedding_function(settings.embedding_function)

    if settings.mode == "embedded":
        logger.debug("Connecting as embedded store")
        return ChromaBackend.connect_embedded(
            settings.embedded_path,
            settings.collection,
            doc_type=settings.doc_type,
            embedding_function=embedding_function,
        )

    logger.debug("Connecting as remote client")
    return ChromaBackend.connect_remote(
        settings.endpoints,
        settings.collection,
        doc_type=settings.doc_type,
        embedding_function=embedding_function,
    )
