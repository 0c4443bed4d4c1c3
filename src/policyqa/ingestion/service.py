"""Document loading and chunking for the policy index."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Protocol, Sequence
from uuid import NAMESPACE_URL, uuid5

from langchain_community.document_loaders import PyPDFLoader, TextLoader
from langchain_community.document_loaders.base import BaseLoader
from langchain_core.documents import Document as LCDocument
from langchain_text_splitters import RecursiveCharacterTextSplitter

from policyqa.config import DEFAULT_SEPARATORS, Settings
from policyqa.errors import IndexingError, ResourceNotFoundError
from policyqa.metrics.observability import get_logger
from policyqa.models import DocumentChunk, DocumentMetadata


class UnsupportedFileTypeError(IndexingError):
    """Raised when a document extension is not supported by the ingestor."""


@dataclass(frozen=True)
class IngestionConfig:
    """Configuration for document loading and splitting."""

    chunk_size: int = 500
    chunk_overlap: int = 100
    separators: tuple[str, ...] = DEFAULT_SEPARATORS
    encoding: str = "utf-8"
    chunk_type: str = "insurance_policy"
    language: str = "zh-CN"
    source_id: str = "FortuneXtra_Savings_Plan"

    @classmethod
    def from_settings(cls, settings: Settings) -> "IngestionConfig":
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            separators=tuple(settings.separators),
            chunk_type=settings.chunk_type,
            language=settings.document_language,
            source_id=settings.source_id,
        )


class DocumentIngestor(Protocol):
    """Protocol for ingestion implementations."""

    def ingest(self, path: Path) -> Sequence[DocumentChunk]:
        """Load the document at ``path`` and split it into tagged chunks."""


def _normalize_text(raw: str) -> str:
    # Newlines are kept intact: paragraph and line breaks are split points.
    return raw.replace("\r\n", "\n").replace("\u00a0", " ")


def _locate_pieces(text: str, pieces: Sequence[str]) -> List[int]:
    """Return the offset of each split piece within ``text``.

    Consecutive pieces advance strictly: each starts after the previous one
    starts and ends after the previous one ends, so repeated clauses resolve to
    the occurrence the splitter actually produced.
    """

    offsets: List[int] = []
    prev_start, prev_end = -1, 0
    for piece in pieces:
        position = text.find(piece, prev_start + 1)
        while position != -1 and position + len(piece) <= prev_end:
            position = text.find(piece, position + 1)
        if position == -1:
            raise IndexingError("split piece could not be located in its source page")
        offsets.append(position)
        prev_start, prev_end = position, position + len(piece)
    return offsets


class LangChainDocumentIngestor:
    """Ingest the policy document via LangChain loaders and a recursive splitter.

    Chunks are measured in characters rather than tokens so that Chinese and
    English text are bounded the same way. Separators stay attached to the end
    of the piece they close and whitespace is not stripped, so every chunk is
    an exact slice of its page starting at ``start_index``.
    """

    _LOADERS: Mapping[str, type[BaseLoader]] = {
        ".pdf": PyPDFLoader,
        ".txt": TextLoader,
        ".md": TextLoader,
    }

    _logger = get_logger("ingestion")

    def __init__(self, config: IngestionConfig | None = None) -> None:
        self._config = config or IngestionConfig()
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=self._config.chunk_size,
            chunk_overlap=self._config.chunk_overlap,
            separators=list(self._config.separators),
            keep_separator="end",
            strip_whitespace=False,
            length_function=len,
        )
        self._boundaries = tuple(sep for sep in self._config.separators if sep)

    @property
    def config(self) -> IngestionConfig:
        return self._config

    def ingest(self, path: Path) -> Sequence[DocumentChunk]:
        path = Path(path)
        if not path.is_file():
            raise ResourceNotFoundError(f"document not found: {path}")
        suffix = path.suffix.lower()
        loader_cls = self._LOADERS.get(suffix)
        if loader_cls is None:
            raise UnsupportedFileTypeError(f"Unsupported document type: {suffix or '<none>'}")

        start = time.perf_counter()
        try:
            loader = self._build_loader(loader_cls, path)
            units = loader.load()
        except Exception as exc:
            raise IndexingError(f"Failed to load {path}: {exc}") from exc

        doc_id = uuid5(NAMESPACE_URL, str(path.resolve())).hex
        document_metadata = DocumentMetadata(
            document_id=doc_id,
            source_path=str(path.resolve()),
            media_type=suffix.lstrip("."),
            extra={"display_name": path.name},
        )

        chunks: List[DocumentChunk] = []
        for unit in self._normalize_documents(units):
            pieces = self._splitter.split_documents([unit])
            starts = _locate_pieces(unit.page_content, [piece.page_content for piece in pieces])
            for position, (piece, start_index) in enumerate(zip(pieces, starts)):
                if not piece.page_content.strip():
                    continue
                is_last = position == len(pieces) - 1
                chunk_metadata = self._tag(piece.metadata)
                chunk_metadata["start_index"] = start_index
                chunk_metadata["hard_cut"] = not is_last and not piece.page_content.endswith(self._boundaries)
                order = len(chunks)
                chunk_metadata["order"] = order
                chunks.append(
                    DocumentChunk(
                        chunk_id=f"{doc_id}-{order}",
                        text=piece.page_content,
                        document_metadata=document_metadata,
                        order=order,
                        chunk_metadata=chunk_metadata,
                    ),
                )

        self._logger.info(
            "ingestion.complete",
            path=str(path),
            unit_count=len(units),
            chunk_count=len(chunks),
            hard_cut_count=sum(1 for chunk in chunks if chunk.chunk_metadata["hard_cut"]),
            duration_seconds=time.perf_counter() - start,
        )
        return chunks

    def _tag(self, metadata: Mapping[str, object]) -> Dict[str, object]:
        tagged: Dict[str, object] = dict(metadata)
        tagged.pop("source", None)
        tagged.update(
            chunk_type=self._config.chunk_type,
            language=self._config.language,
            source=self._config.source_id,
        )
        return tagged

    def _build_loader(self, loader_cls: type[BaseLoader], path: Path) -> BaseLoader:
        if loader_cls is TextLoader:
            return loader_cls(str(path), encoding=self._config.encoding)
        return loader_cls(str(path))

    def _normalize_documents(self, documents: Sequence[LCDocument]) -> Sequence[LCDocument]:
        return [
            LCDocument(page_content=_normalize_text(document.page_content), metadata=dict(document.metadata))
            for document in documents
        ]


def ingest_path(path: Path, *, config: IngestionConfig | None = None) -> Sequence[DocumentChunk]:
    """Convenience helper for tests and chunk inspection."""

    ingestor = LangChainDocumentIngestor(config=config)
    return ingestor.ingest(path)
