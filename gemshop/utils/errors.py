"""Custom exception hierarchy for gemshop.

All application exceptions inherit from :class:`GemShopError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "anthropic", "sqlite") caused the failure.

The hierarchy is organized by where the error surfaces:

    GemShopError  (base -- catch-all for any gemshop error)
    +-- ValidationError          (malformed request fields -> 400)
    +-- NotFoundError            (unknown ids -> 404)
    |   +-- GemNotFoundError
    |   +-- DocumentNotFoundError
    +-- ConfigurationError       (startup / missing config)
    +-- StorageError             (document store failures -> 500)
    +-- LLMError                 (generation API call failure)
    +-- RAGError                 (embedding or retrieval failure)
    |   +-- EmbeddingError
    +-- IngestionError           (one file's ingestion failed)
        +-- ExtractionError      (file could not be parsed into text)

Each class exposes an ``http_status`` so the API layer can translate
errors into responses without a lookup table.
"""


class GemShopError(Exception):
    """Base exception for all gemshop errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai] Rate limit exceeded``.
    """

    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request-facing errors
# ---------------------------------------------------------------------------

class ValidationError(GemShopError):
    """Raised when request input is missing or has the wrong shape."""

    http_status = 400

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(GemShopError):
    """Raised when a referenced entity does not exist."""

    http_status = 404

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GemNotFoundError(NotFoundError):
    """Raised when a Gem id does not resolve to a stored Gem."""

    def __init__(self, gem_id: str = "") -> None:
        self._gem_id = gem_id
        super().__init__(message="Gem not found.")

    @property
    def gem_id(self) -> str:
        return self._gem_id


class DocumentNotFoundError(NotFoundError):
    """Raised when one or more document ids do not resolve to stored documents."""

    def __init__(self, document_ids: list[str] | None = None) -> None:
        self._document_ids = list(document_ids or [])
        super().__init__(
            message=f"Document not found: {', '.join(self._document_ids)}"
        )

    @property
    def document_ids(self) -> list[str]:
        return list(self._document_ids)


# ---------------------------------------------------------------------------
# Configuration / storage errors
# ---------------------------------------------------------------------------

class ConfigurationError(GemShopError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(GemShopError):
    """Raised when the document store cannot complete an operation."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External provider errors
# ---------------------------------------------------------------------------

class LLMError(GemShopError):
    """Raised when an LLM API call fails or returns an unparseable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(GemShopError):
    """Raised when a RAG pipeline operation fails (embedding or retrieval)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(RAGError):
    """Raised when the embedding API call fails."""

    def __init__(
        self,
        message: str = "Embedding API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class IngestionError(GemShopError):
    """Raised when ingestion of a specific file fails.

    Carries the ``filename`` so background workers can log which upload
    was affected without inspecting the message text.
    """

    def __init__(
        self,
        filename: str,
        message: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._filename = filename
        super().__init__(
            message=message or f"Failed to ingest file: {filename}",
            provider_name=provider_name,
        )

    @property
    def filename(self) -> str:
        return self._filename


class ExtractionError(IngestionError):
    """Raised when a file cannot be converted into text (corrupt, bad encoding)."""

    def __init__(self, filename: str, message: str | None = None) -> None:
        super().__init__(
            filename=filename,
            message=message or f"Failed to extract text from file: {filename}",
        )
