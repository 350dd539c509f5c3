"""Provider catalog and per-site Target Agent adapters."""

from llm_grid.providers.registry import (
    PROVIDER_DEFS,
    PROVIDER_IDS,
    ProviderDef,
    get_provider,
    is_home_url,
    provider_for_url,
)

__all__ = [
    "PROVIDER_DEFS",
    "PROVIDER_IDS",
    "ProviderDef",
    "get_provider",
    "is_home_url",
    "provider_for_url",
]
