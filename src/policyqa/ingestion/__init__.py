"""Document ingestion pipeline."""

from .service import (
    DocumentIngestor,
    IngestionConfig,
    LangChainDocumentIngestor,
    UnsupportedFileTypeError,
    ingest_path,
)

__all__ = [
    "DocumentIngestor",
    "IngestionConfig",
    "LangChainDocumentIngestor",
    "UnsupportedFileTypeError",
    "ingest_path",
]
