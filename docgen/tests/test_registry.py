import pytest
from pydantic import ValidationError

from docgen.app.registry.registry import (
    DOCUMENT_TEMPLATES,
    TEMPLATE_CATALOG,
    TemplateCatalog,
    TemplateDefinition,
    TemplateVersion,
)


def _version(version: str) -> TemplateVersion:
    return TemplateVersion(
        version=version,
        description=f"Test template ({version})",
        source_ref=f"test-{version}.html.j2",
        default_output_base_name=f"test-{version}",
    )


def test_catalog_lists_definitions_in_registration_order():
    assert [d.id for d in TEMPLATE_CATALOG.list_all()] == ["service-agreement", "nda"]


def test_find_returns_none_for_unknown_id():
    assert TEMPLATE_CATALOG.find("does-not-exist") is None
    assert TEMPLATE_CATALOG.find("nda").name == "Non-Disclosure Agreement"


def test_every_default_version_is_registered():
    for definition in DOCUMENT_TEMPLATES:
        assert definition.find_version(definition.default_version) is not None


def test_total_versions_counts_every_pair():
    assert TEMPLATE_CATALOG.total_versions() == 4


def test_default_version_must_exist():
    with pytest.raises(ValidationError):
        TemplateDefinition(
            id="broken",
            name="Broken",
            description="default points nowhere",
            default_version="v9",
            versions=(_version("v1"),),
        )


def test_version_strings_must_be_unique():
    with pytest.raises(ValidationError):
        TemplateDefinition(
            id="broken",
            name="Broken",
            description="duplicate versions",
            default_version="v1",
            versions=(_version("v1"), _version("v1")),
        )


def test_catalog_rejects_duplicate_ids():
    definition = TemplateDefinition(
        id="dup",
        name="Dup",
        description="",
        default_version="v1",
        versions=(_version("v1"),),
    )
    with pytest.raises(ValueError):
        TemplateCatalog([definition, definition])


def test_definitions_are_immutable():
    definition = TEMPLATE_CATALOG.find("nda")
    with pytest.raises(ValidationError):
        definition.default_version = "v2"
