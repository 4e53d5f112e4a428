import pytest

from converter.services.input_detect import detect_delimiter
from shared.config import ApplicationSettings, DetectionSettings, get_settings, reload_settings


@pytest.fixture
def restore_settings():
    yield
    reload_settings()


class TestSettings:
    def test_defaults(self):
        settings = ApplicationSettings()
        assert settings.detection.default_delimiter == ","
        assert settings.mapping.inference_threshold == 0.62
        assert settings.blocks.block_row_gap == 2
        assert settings.render.table_columns == "all"

    def test_tab_delimiter_spelling(self):
        assert DetectionSettings(default_delimiter="tab").default_delimiter == "\t"
        assert DetectionSettings(default_delimiter="\\t").default_delimiter == "\t"

    def test_environment_binding(self, monkeypatch):
        monkeypatch.setenv("MARKDOWN_MIN_SCORE", "55")
        assert DetectionSettings().markdown_min_score == 55

    def test_reload_settings(self, restore_settings, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        reloaded = reload_settings()
        assert reloaded.log_level == "DEBUG"
        assert get_settings() is reloaded

    def test_injected_settings_are_used(self):
        settings = ApplicationSettings(detection=DetectionSettings(default_delimiter=";"))
        detection = detect_delimiter("no delimiter here\nnor here, or", settings)
        assert detection.delimiter == ";"
        assert detection.consistent is False
