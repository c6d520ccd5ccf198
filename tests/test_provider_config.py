"""Kaleyra credentials loaded from the registry settings table."""
import pytest

from wappy.core import config
from wappy.core.config_loader import ProviderConfigLoader
from wappy.core.errors import InvalidRequest, ProviderConfigIncomplete


def test_load_complete_configuration(add_settings, config_loader, kaleyra_settings):
    add_settings(
        "spotty42",
        wa_kaleyra_wabaid="1029384756",
        wa_kaleyra_url_calback="https://hooks.example.com/kaleyra",
        **kaleyra_settings,
    )

    creds = config_loader.load("spotty42")

    assert creds.sid == "HXAP123"
    assert creds.api_key == "Ae1-secret-key"
    assert creds.sender == "390212345678"
    assert creds.waba_id == "1029384756"
    assert creds.callback_url == "https://hooks.example.com/kaleyra"


def test_api_key_hidden_from_repr(add_settings, config_loader, kaleyra_settings):
    add_settings("spotty42", **kaleyra_settings)
    assert "Ae1-secret-key" not in repr(config_loader.load("spotty42"))


def test_missing_api_key_lists_key_names_only(add_settings, config_loader, kaleyra_settings):
    settings = dict(kaleyra_settings)
    settings.pop("wa_kaleyra_apikey")
    add_settings("spotty42", **settings)

    with pytest.raises(ProviderConfigIncomplete) as exc:
        config_loader.load("spotty42")

    assert exc.value.status_code == 400
    assert exc.value.missing_keys == ["wa_kaleyra_apikey"]
    assert exc.value.to_dict()["details"] == {"missing_keys": ["wa_kaleyra_apikey"]}
    assert "HXAP123" not in str(exc.value.to_dict())


def test_blank_values_count_as_missing(add_settings, config_loader, kaleyra_settings):
    add_settings("spotty42", **dict(kaleyra_settings, wa_kaleyra_sid="   "))

    with pytest.raises(ProviderConfigIncomplete) as exc:
        config_loader.load("spotty42")
    assert exc.value.missing_keys == ["wa_kaleyra_sid"]


def test_tenant_without_settings(config_loader):
    with pytest.raises(ProviderConfigIncomplete) as exc:
        config_loader.load("spotty42")
    assert set(exc.value.missing_keys) == {
        "wa_kaleyra_sid", "wa_kaleyra_apikey", "wa_kaleyra_numero_telefono"
    }


def test_settings_of_other_tenants_are_ignored(add_settings, config_loader, kaleyra_settings):
    add_settings("spotty43", **kaleyra_settings)
    with pytest.raises(ProviderConfigIncomplete):
        config_loader.load("spotty42")


def test_callback_url_falls_back_to_default(monkeypatch, add_settings, config_loader, kaleyra_settings):
    monkeypatch.setattr(config, "KALEYRA_CALLBACK_URL", "https://default.example.com/cb")
    add_settings("spotty42", **kaleyra_settings)

    assert config_loader.load("spotty42").callback_url == "https://default.example.com/cb"


def test_configured_keys_report_presence_only(add_settings, config_loader, kaleyra_settings):
    add_settings("spotty42", **kaleyra_settings)

    keys = config_loader.configured_keys("spotty42")

    assert keys["wa_kaleyra_apikey"] is True
    assert keys["wa_kaleyra_wabaid"] is False
    assert "Ae1-secret-key" not in str(keys)


def test_blank_tenant_code_is_rejected():
    with pytest.raises(InvalidRequest):
        ProviderConfigLoader(session_factory=lambda: None).load("  ")
