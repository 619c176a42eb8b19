"""
Document template registry.

This module defines the set of document templates that may be generated
by the service. Each template definition explicitly binds together:

- a public template identifier
- human-readable metadata
- an ordered list of versions, each pointing at one markup source file
  and carrying the base name used for generated output files
- the version served when a caller does not ask for one

Templates must be registered here to be addressable via the API. The
registry is constructed once at import time and never mutated.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TemplateVersion(BaseModel):
    """
    One concrete, immutable revision of a template.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., min_length=1)
    description: str
    source_ref: str = Field(
        ...,
        min_length=1,
        description="File name of the markup source, relative to the template directory",
    )
    default_output_base_name: str = Field(..., min_length=1)


class TemplateDefinition(BaseModel):
    """
    Declarative description of a document template and its versions.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    description: str
    default_version: str
    versions: Tuple[TemplateVersion, ...]

    @model_validator(mode="after")
    def check_versions(self) -> "TemplateDefinition":
        seen = [v.version for v in self.versions]
        if len(seen) != len(set(seen)):
            raise ValueError(f"Duplicate version strings in template '{self.id}'")
        if self.default_version not in seen:
            raise ValueError(
                f"default_version '{self.default_version}' of template "
                f"'{self.id}' is not one of {seen}"
            )
        return self

    def find_version(self, version: str) -> Optional[TemplateVersion]:
        for entry in self.versions:
            if entry.version == version:
                return entry
        return None

    @property
    def version_ids(self) -> List[str]:
        return [v.version for v in self.versions]


class TemplateCatalog:
    """
    Read-only lookup over a fixed set of template definitions.

    Iteration order is registration order. Lookups signal "not found"
    by returning ``None``; raising is left to callers.
    """

    def __init__(self, definitions: Iterable[TemplateDefinition]) -> None:
        self._definitions: Dict[str, TemplateDefinition] = {}
        for definition in definitions:
            if definition.id in self._definitions:
                raise ValueError(f"Duplicate template id '{definition.id}'")
            self._definitions[definition.id] = definition

    def list_all(self) -> List[TemplateDefinition]:
        return list(self._definitions.values())

    def find(self, template_id: str) -> Optional[TemplateDefinition]:
        return self._definitions.get(template_id)

    @property
    def ids(self) -> List[str]:
        return list(self._definitions)

    def total_versions(self) -> int:
        return sum(len(d.versions) for d in self._definitions.values())


DOCUMENT_TEMPLATES: Tuple[TemplateDefinition, ...] = (
    TemplateDefinition(
        id="service-agreement",
        name="Service Agreement",
        description="Professional services agreement template",
        default_version="v2",
        versions=(
            TemplateVersion(
                version="v1",
                description="Service Agreement basic template (v1)",
                source_ref="service-agreement-v1.html.j2",
                default_output_base_name="service-agreement-v1",
            ),
            TemplateVersion(
                version="v2",
                description="Service Agreement updated template (v2)",
                source_ref="service-agreement-v2.html.j2",
                default_output_base_name="service-agreement-v2",
            ),
        ),
    ),
    TemplateDefinition(
        id="nda",
        name="Non-Disclosure Agreement",
        description="Mutual non-disclosure agreement template",
        default_version="v1",
        versions=(
            TemplateVersion(
                version="v1",
                description="Mutual NDA (v1)",
                source_ref="nda-v1.html.j2",
                default_output_base_name="nda-v1",
            ),
            TemplateVersion(
                version="v2",
                description="Mutual NDA (extended, v2)",
                source_ref="nda-v2.html.j2",
                default_output_base_name="nda-v2",
            ),
        ),
    ),
)


TEMPLATE_CATALOG = TemplateCatalog(DOCUMENT_TEMPLATES)
