"""Custom exceptions for the application.

Ingestion-fatal errors (derivatives, storage upload, persistence) unwind
``PostService.create_post`` after rolling back side effects. Best-effort
errors (indexing, embedding) are caught where they occur and logged.
"""


class ShotShareException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(ShotShareException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, status_code=404)


class ForbiddenException(ShotShareException):
    """Raised when the requester does not own the resource."""

    def __init__(self, message: str = "You do not have permission to modify this resource"):
        super().__init__(message, status_code=403)


class ValidationException(ShotShareException):
    """Raised when validation fails."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class StorageException(ShotShareException):
    """Raised when file storage operations fail."""

    def __init__(self, message: str):
        super().__init__(f"Storage error: {message}", status_code=500)


class DerivativeGenerationFailed(ShotShareException):
    """Raised when a thumbnail or display image cannot be produced."""

    def __init__(self, message: str):
        super().__init__(f"Image processing error: {message}", status_code=422)


class StorageUploadFailed(ShotShareException):
    """Raised when derivative uploads fail; uploaded blobs have been removed."""

    def __init__(self, message: str):
        super().__init__(f"Upload failed: {message}", status_code=502)


class PersistenceFailed(ShotShareException):
    """Raised when the post record cannot be written; uploaded blobs have been removed."""

    def __init__(self, message: str):
        super().__init__(f"Database error: {message}", status_code=500)


class IndexingFailed(ShotShareException):
    """Raised when submitting or polling an index document fails."""

    def __init__(self, message: str):
        super().__init__(f"Indexing error: {message}", status_code=502)


class IndexingTimedOut(ShotShareException):
    """Raised when an indexing job does not complete within the allowed poll attempts."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Indexing did not complete after {attempts} polls", status_code=504)


class EmbeddingGenerationFailed(ShotShareException):
    """Raised when the embedding model call fails."""

    def __init__(self, message: str):
        super().__init__(f"Embedding error: {message}", status_code=502)


class EmbeddingUnavailable(ShotShareException):
    """Raised when a post has no stored embedding."""

    def __init__(self, post_id: str):
        self.post_id = post_id
        super().__init__(f"No embedding stored for post '{post_id}'", status_code=404)


class StreamError(ShotShareException):
    """Raised when the grounded search stream fails."""

    def __init__(self, message: str):
        super().__init__(f"Search stream error: {message}", status_code=502)
