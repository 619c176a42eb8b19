import pytest
from pydantic import ValidationError

from docgen.app.config import DEFAULT_TEMPLATE_DIR, Settings


def test_defaults():
    settings = Settings()

    assert settings.template_dir == DEFAULT_TEMPLATE_DIR.resolve()
    assert settings.template_cache_enabled is True
    assert settings.pdf_timeout_ms == 30_000
    assert settings.allowed_origins == ["*"]
    assert settings.enable_template_reload is False


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("DOCGEN_PDF_TIMEOUT_MS", "5000")
    monkeypatch.setenv("DOCGEN_TEMPLATE_CACHE_ENABLED", "false")
    monkeypatch.setenv("DOCGEN_ALLOWED_ORIGINS", "https://a.example, https://b.example")

    settings = Settings()

    assert settings.pdf_timeout_ms == 5000
    assert settings.template_cache_enabled is False
    assert settings.allowed_origins == ["https://a.example", "https://b.example"]


def test_missing_template_dir_fails_fast(tmp_path):
    with pytest.raises(ValidationError):
        Settings(template_dir=tmp_path / "nope")


@pytest.mark.parametrize("timeout", [0, -1])
def test_timeout_must_be_positive(timeout):
    with pytest.raises(ValidationError):
        Settings(pdf_timeout_ms=timeout)


def test_log_level_is_normalized_and_validated():
    assert Settings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.pdf_timeout_ms = 1
