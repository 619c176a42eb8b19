from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docgen.app.registry.registry import TemplateDefinition
from docgen.app.services.documents import DocumentFormat


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# POST /documents/generate
# ---------------------------------------------------------------------------


class GenerateDocumentRequest(_CamelModel):
    """
    Payload for document generation.

    ``data`` is arbitrary structured JSON bound into the template's
    placeholders; its shape is only checked by the template itself.
    """

    model_config = ConfigDict(extra="forbid")

    template_id: str = Field(..., min_length=1)
    version: Optional[str] = Field(default=None, min_length=1)
    format: DocumentFormat = DocumentFormat.HTML
    data: Dict[str, Any] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# GET /documents/templates
# ---------------------------------------------------------------------------


class TemplateVersionItem(_CamelModel):
    version: str
    description: str


class TemplateListItem(_CamelModel):
    id: str
    name: str
    description: str
    default_version: str
    versions: List[TemplateVersionItem]

    @classmethod
    def from_definition(cls, definition: TemplateDefinition) -> "TemplateListItem":
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            default_version=definition.default_version,
            versions=[
                TemplateVersionItem(version=v.version, description=v.description)
                for v in definition.versions
            ],
        )


class TemplateListResponse(_CamelModel):
    templates: List[TemplateListItem]


class TemplateReloadResponse(_CamelModel):
    cached: int


# ---------------------------------------------------------------------------
# GET /documents/health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "documents"
    timestamp: str
