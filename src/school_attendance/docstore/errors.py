class StoreError(Exception):
    """Raised when the document store is unavailable or rejects a write."""


class DocumentNotFoundError(StoreError):
    """Raised by partial updates that target a document which does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class TransactionConflictError(StoreError):
    """Raised when MySQL aborts a transaction as a deadlock victim; safe to rerun."""
