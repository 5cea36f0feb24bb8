"""Unit tests for config.py"""

import pytest
from pydantic import ValidationError

from newsletter_studio.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("STUDIO_DRAG_THRESHOLD_PX", raising=False)
    settings = Settings(_env_file=None)
    assert settings.drag_threshold_px == 8.0
    assert settings.save_target == "file"
    assert settings.html_lang == "en"
    assert settings.max_sessions == 100


def test_env_vars_use_studio_prefix(monkeypatch):
    monkeypatch.setenv("STUDIO_DRAG_THRESHOLD_PX", "12")
    monkeypatch.setenv("STUDIO_ORGANIZATION_NAME", "City Lab")
    settings = Settings(_env_file=None)
    assert settings.drag_threshold_px == 12.0
    assert settings.organization_name == "City Lab"


def test_env_file_is_read(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STUDIO_RADAR_TITLE", raising=False)
    (tmp_path / ".env").write_text("STUDIO_RADAR_TITLE=SCAN\n", encoding="utf-8")
    assert Settings().radar_title == "SCAN"


def test_negative_threshold_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, drag_threshold_px=-1)


def test_unknown_save_target_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, save_target="ftp")


def test_variant_title(config):
    assert config.variant_title("radar") == "RADAR"
    assert config.variant_title("standard") == "INNOV'ACTU"


def test_session_cap_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, max_sessions=0)
