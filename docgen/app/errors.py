"""
Error taxonomy for the document generation pipeline.

Every failure raised by the pipeline carries an explicit ``ErrorKind``.
The transport layer maps kinds to response statuses; it never inspects
message text or exception class names.

Caller errors (unknown template id or version) carry an actionable
message listing valid alternatives. All other kinds are internal: their
detail is logged, and callers only ever see an opaque failure.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence


class ErrorKind(str, Enum):
    TEMPLATE_NOT_FOUND = "template_not_found"
    VERSION_NOT_FOUND = "version_not_found"
    RENDER_FAILED = "render_failed"
    ENGINE_NOT_READY = "engine_not_ready"
    PDF_CONVERSION_FAILED = "pdf_conversion_failed"
    PRELOAD_FAILED = "preload_failed"
    GENERATION_FAILED = "generation_failed"

    @property
    def is_caller_error(self) -> bool:
        return self in {
            ErrorKind.TEMPLATE_NOT_FOUND,
            ErrorKind.VERSION_NOT_FOUND,
        }


class DocumentError(Exception):
    """Base class for all pipeline failures."""

    kind: ErrorKind = ErrorKind.GENERATION_FAILED

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------


class TemplateNotFoundError(DocumentError):
    kind = ErrorKind.TEMPLATE_NOT_FOUND

    def __init__(self, template_id: str, known_ids: Sequence[str]) -> None:
        self.template_id = template_id
        self.known_ids = list(known_ids)
        super().__init__(
            f'Unknown template id "{template_id}". '
            f"Available templates: {', '.join(self.known_ids)}",
            details={"template_id": template_id, "known_ids": self.known_ids},
        )


class VersionNotFoundError(DocumentError):
    kind = ErrorKind.VERSION_NOT_FOUND

    def __init__(
        self,
        template_id: str,
        version: str,
        known_versions: Sequence[str],
    ) -> None:
        self.template_id = template_id
        self.version = version
        self.known_versions = list(known_versions)
        super().__init__(
            f'Unknown version "{version}" for template "{template_id}". '
            f"Available versions: {', '.join(self.known_versions)}",
            details={
                "template_id": template_id,
                "version": version,
                "known_versions": self.known_versions,
            },
        )


# ---------------------------------------------------------------------------
# Internal errors
# ---------------------------------------------------------------------------


class RenderFailedError(DocumentError):
    kind = ErrorKind.RENDER_FAILED

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message, details={"path": path})


class EngineNotReadyError(DocumentError):
    kind = ErrorKind.ENGINE_NOT_READY


class PdfConversionError(DocumentError):
    kind = ErrorKind.PDF_CONVERSION_FAILED


class PreloadFailedError(DocumentError):
    kind = ErrorKind.PRELOAD_FAILED

    def __init__(self, failures: Iterable[str]) -> None:
        self.failures = list(failures)
        super().__init__(
            f"Failed to preload {len(self.failures)} template(s): "
            f"{', '.join(self.failures)}",
            details={"failures": self.failures},
        )


class DocumentGenerationError(DocumentError):
    kind = ErrorKind.GENERATION_FAILED
