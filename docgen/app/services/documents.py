"""
Document generation orchestrator.

Sequences template resolution, strict rendering and (optionally) PDF
conversion, and packages the result in one of two delivery shapes:

    buffered  GeneratedDocument: the complete body as bytes.
    streamed  GeneratedDocumentStream: a once-only async byte stream.

Both shapes share every step up to packaging, so draining a stream
always yields exactly the buffered body for the same inputs.

The HTML stream is encoded lazily, slice by slice. The PDF stream is a
delivery-shape convenience only: the browser exports the whole document
before the first byte is yielded.

Failure policy:
- Unknown template id / version propagate unchanged (caller errors).
- Pipeline errors propagate with their own ErrorKind (internal errors).
- Anything unexpected is logged and wrapped in DocumentGenerationError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Mapping, Optional

from docgen.app.errors import DocumentError, DocumentGenerationError
from docgen.app.services.pdf_engine import PdfEngine
from docgen.app.services.rendering import render as strict_render
from docgen.app.services.template_cache import ResolvedTemplate, TemplateCache

logger = logging.getLogger(__name__)


HTML_MIME_TYPE = "text/html; charset=utf-8"
PDF_MIME_TYPE = "application/pdf"

STREAM_CHUNK_SIZE = 64 * 1024


class DocumentFormat(str, Enum):
    HTML = "html"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return PDF_MIME_TYPE if self is DocumentFormat.PDF else HTML_MIME_TYPE


@dataclass(frozen=True)
class GeneratedDocument:
    content: bytes
    mime_type: str
    file_name: str


class ByteStream:
    """
    Async byte stream that can be consumed exactly once.
    """

    def __init__(self, chunks: AsyncIterator[bytes]) -> None:
        self._chunks = chunks
        self._consumed = False

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise RuntimeError("Document stream has already been consumed")
        self._consumed = True
        return self._chunks

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self])


@dataclass(frozen=True)
class GeneratedDocumentStream:
    stream: ByteStream
    mime_type: str
    file_name: str
    size: Optional[int] = None


async def _iter_text(text: str, chunk_size: int = STREAM_CHUNK_SIZE) -> AsyncIterator[bytes]:
    # Slicing on characters keeps multi-byte UTF-8 sequences intact.
    for start in range(0, len(text), chunk_size):
        yield text[start:start + chunk_size].encode("utf-8")


async def _iter_bytes(data: bytes, chunk_size: int = STREAM_CHUNK_SIZE) -> AsyncIterator[bytes]:
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


class DocumentService:
    def __init__(
        self,
        templates: TemplateCache,
        pdf_engine: PdfEngine,
        renderer: Callable[[str, Mapping[str, Any]], str] = strict_render,
    ) -> None:
        self._templates = templates
        self._pdf_engine = pdf_engine
        self._render = renderer

    # ------------------------------------------------------------------
    # Shared pipeline
    # ------------------------------------------------------------------

    async def _resolve_and_render(
        self,
        template_id: str,
        version: Optional[str],
        data: Mapping[str, Any],
    ) -> tuple[ResolvedTemplate, str]:
        resolved = await self._templates.resolve(template_id, version)
        html = self._render(resolved.content, data)
        return resolved, html

    def _file_name(self, resolved: ResolvedTemplate, fmt: DocumentFormat) -> str:
        return f"{resolved.version.default_output_base_name}.{fmt.extension}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        template_id: str,
        data: Mapping[str, Any],
        *,
        version: Optional[str] = None,
        fmt: DocumentFormat = DocumentFormat.HTML,
    ) -> GeneratedDocument:
        """
        Generate a document and return the complete body.
        """
        logger.info(
            "Generating document: %s (%s) as %s",
            template_id,
            version or "default",
            fmt.value,
        )
        try:
            resolved, html = await self._resolve_and_render(template_id, version, data)

            if fmt is DocumentFormat.PDF:
                content = await self._pdf_engine.convert(html)
            else:
                content = html.encode("utf-8")

        except DocumentError as exc:
            self._log_failure(exc, template_id, version, fmt)
            raise
        except Exception as exc:
            logger.exception(
                "Document generation failed for template='%s' version='%s' format='%s'",
                template_id,
                version,
                fmt.value,
            )
            raise DocumentGenerationError("Document generation failed") from exc

        document = GeneratedDocument(
            content=content,
            mime_type=fmt.mime_type,
            file_name=self._file_name(resolved, fmt),
        )
        logger.info(
            "Document generated: %s (%d bytes)",
            document.file_name,
            len(document.content),
        )
        return document

    async def generate_stream(
        self,
        template_id: str,
        data: Mapping[str, Any],
        *,
        version: Optional[str] = None,
        fmt: DocumentFormat = DocumentFormat.HTML,
    ) -> GeneratedDocumentStream:
        """
        Generate a document and return it as a once-only byte stream.
        """
        logger.info(
            "Generating document stream: %s (%s) as %s",
            template_id,
            version or "default",
            fmt.value,
        )
        try:
            resolved, html = await self._resolve_and_render(template_id, version, data)

            if fmt is DocumentFormat.PDF:
                pdf_bytes = await self._pdf_engine.convert(html)
                stream = ByteStream(_iter_bytes(pdf_bytes))
                size: Optional[int] = len(pdf_bytes)
            else:
                stream = ByteStream(_iter_text(html))
                size = None

        except DocumentError as exc:
            self._log_failure(exc, template_id, version, fmt)
            raise
        except Exception as exc:
            logger.exception(
                "Document stream generation failed for template='%s' version='%s' format='%s'",
                template_id,
                version,
                fmt.value,
            )
            raise DocumentGenerationError("Document stream generation failed") from exc

        return GeneratedDocumentStream(
            stream=stream,
            mime_type=fmt.mime_type,
            file_name=self._file_name(resolved, fmt),
            size=size,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _log_failure(
        exc: DocumentError,
        template_id: str,
        version: Optional[str],
        fmt: DocumentFormat,
    ) -> None:
        if exc.kind.is_caller_error:
            logger.info("document_request_rejected: %s", exc.message)
            return
        logger.error(
            "Document generation failed for template='%s' version='%s' format='%s' kind='%s'",
            template_id,
            version,
            fmt.value,
            exc.kind.value,
            exc_info=exc,
        )
