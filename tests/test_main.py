import pydantic
import pytest

from mirrorshare import main
from mirrorshare.config import Settings, settings


def test_tls_disabled_by_default(monkeypatch):
    monkeypatch.setattr(settings, "https_enabled", False)
    assert main.tls_options() == {}


def test_tls_missing_paths_falls_back_to_http(monkeypatch):
    monkeypatch.setattr(settings, "https_enabled", True)
    monkeypatch.setattr(settings, "https_key_path", "")
    monkeypatch.setattr(settings, "https_cert_path", "")
    assert main.tls_options() == {}
    assert settings.https_enabled is False


def test_tls_unreadable_cert_falls_back_to_http(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "https_enabled", True)
    monkeypatch.setattr(settings, "https_key_path", str(tmp_path / "missing.key"))
    monkeypatch.setattr(settings, "https_cert_path", str(tmp_path / "missing.crt"))
    assert main.tls_options() == {}
    assert settings.https_enabled is False


def test_invalid_port_is_rejected():
    with pytest.raises(pydantic.ValidationError):
        Settings(port=70000)
