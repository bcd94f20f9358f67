"""
Backend adapter contract for the bulk import pipeline.

Defines the operations the pipeline calls on the indexing backend and the
errors an adapter raises.
"""

from abc import ABC, abstractmethod

from bulkimport.models import Batch, BatchOutcome


class BackendError(RuntimeError):
    """Raised for backend failures."""

    pass


class BackendConnectionError(BackendError):
    """Raised when no connection to the backend can be established."""

    pass


class CollectionNotFoundError(BackendError):
    """Raised when the target collection does not exist yet."""

    def __init__(self, collection: str):
        super().__init__(f"Collection '{collection}' does not exist")
        self.collection = collection


class BackendAdapter(ABC):
    """Operations the import pipeline needs from an indexing backend."""

    @abstractmethod
    def count_in_scope(self, collection: str, doc_type: str | None = None) -> int:
        """
        Count documents in a collection.

        Args:
            collection: Target collection name
            doc_type: Restrict the count to this document-type label

        Returns:
            Number of documents

        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        raise NotImplementedError

    @abstractmethod
    def refresh(self, collection: str) -> None:
        """Make recent writes visible to subsequent count queries."""
        raise NotImplementedError

    @abstractmethod
    def submit_batch(self, batch: Batch) -> BatchOutcome:
        """
        Write one batch.

        Blocks until the backend answers; the submitter runs this on a
        worker thread. Transport failures are raised, not returned.

        Args:
            batch: Sealed batch to write

        Returns:
            Per-document outcomes in batch order
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources."""
        pass
