"""Feature flag helpers for runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "etransfer_enabled",
    "llm_parser_enabled",
    "invoice_emails_enabled",
]


class FeatureFlagValues(TypedDict):
    etransfer_enabled: bool
    llm_parser_enabled: bool
    invoice_emails_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_FEATURE_FLAG_DEFINITIONS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "etransfer_enabled": FeatureFlagDefinition("FEATURE_ETRANSFER_ENABLED", True),
    "llm_parser_enabled": FeatureFlagDefinition("FEATURE_LLM_PARSER_ENABLED", True),
    "invoice_emails_enabled": FeatureFlagDefinition("FEATURE_INVOICE_EMAILS_ENABLED", True),
}


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Return the cached feature flag state sourced from the environment."""
    values: Dict[FeatureFlagKey, bool] = {}
    for key, definition in _FEATURE_FLAG_DEFINITIONS.items():
        values[key] = _normalize_bool(os.getenv(definition.env_var), default=definition.default)
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    return get_feature_flags()[flag]


def etransfer_feature_enabled() -> bool:
    """Deployment-wide kill switch; the admin settings toggle applies on top."""
    return is_feature_enabled("etransfer_enabled")


def llm_parser_enabled() -> bool:
    """Allow the LLM pass of the payment parser when an API key is configured."""
    return is_feature_enabled("llm_parser_enabled")


def invoice_emails_enabled() -> bool:
    return is_feature_enabled("invoice_emails_enabled")


def refresh_feature_flag_cache() -> None:
    """Invalidate cached feature flag values (useful for tests)."""
    get_feature_flags.cache_clear()
