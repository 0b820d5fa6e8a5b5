"""
Sales override gating for the configurator.

The configurator is an untrusted entry point like the API: override values
typed into the sales panel only reach the engine when the operator entered
the configured API key.
"""
from typing import Any, Mapping, Optional

from ..api.security import key_matches
from ..config.settings import Settings
from ..engine.models import Overrides
from ..policy.override_policy import PRICE_POLICY, overrides_from


def sales_overrides(values: Mapping[str, Any], entered_key: Optional[str], settings: Settings) -> Overrides:
    """
    Build Overrides from sales panel values keyed by their wire names.

    Without a matching key every value is dropped and the rule set applies.
    """
    privileged = key_matches(entered_key, settings.api_key)
    safe = PRICE_POLICY.sanitize({k: v for k, v in values.items() if v is not None}, privileged)
    return overrides_from(safe)
