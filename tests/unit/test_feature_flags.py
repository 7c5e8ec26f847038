import pytest

from portal.utils.feature_flags import (
    FeatureFlagKey,
    get_feature_flags,
    invoice_emails_enabled,
    is_feature_enabled,
    refresh_feature_flag_cache,
)

_ENV_FLAG_MAPPING = {
    "FEATURE_ETRANSFER_ENABLED": "etransfer_enabled",
    "FEATURE_LLM_PARSER_ENABLED": "llm_parser_enabled",
    "FEATURE_INVOICE_EMAILS_ENABLED": "invoice_emails_enabled",
}


@pytest.fixture(autouse=True)
def reset_flags(monkeypatch):
    for env_name in _ENV_FLAG_MAPPING:
        monkeypatch.delenv(env_name, raising=False)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


def test_flags_default_true():
    assert get_feature_flags() == {
        "etransfer_enabled": True,
        "llm_parser_enabled": True,
        "invoice_emails_enabled": True,
    }


@pytest.mark.parametrize("env_name,flag_key", list(_ENV_FLAG_MAPPING.items()))
def test_flag_disabled_via_env(monkeypatch, env_name: str, flag_key: FeatureFlagKey):
    monkeypatch.setenv(env_name, "off")
    refresh_feature_flag_cache()
    assert is_feature_enabled(flag_key) is False


@pytest.mark.parametrize("raw_value", ["maybe", "2"])
def test_unknown_value_keeps_default(monkeypatch, raw_value):
    monkeypatch.setenv("FEATURE_INVOICE_EMAILS_ENABLED", raw_value)
    refresh_feature_flag_cache()
    assert invoice_emails_enabled() is True


def test_cache_needs_refresh(monkeypatch):
    monkeypatch.setenv("FEATURE_ETRANSFER_ENABLED", "false")
    refresh_feature_flag_cache()
    assert get_feature_flags()["etransfer_enabled"] is False

    monkeypatch.setenv("FEATURE_ETRANSFER_ENABLED", "true")
    assert get_feature_flags()["etransfer_enabled"] is False

    refresh_feature_flag_cache()
    assert get_feature_flags()["etransfer_enabled"] is True
