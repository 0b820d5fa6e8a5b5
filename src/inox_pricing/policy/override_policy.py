"""
Override Policy - Decides which request fields an untrusted caller may set.

Each entry point has a policy made of two explicit tables: fields anyone may
send, and fields only a privileged caller may send. Anything else is dropped
silently so unprivileged callers cannot tell which fields exist. Adding a
new override is one line in OVERRIDE_FIELDS.
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..engine.models import DeliveryTier, Overrides
from ..errors import ValidationError


# Fields of a /price request that are always accepted
PUBLIC_FIELDS = frozenset({
    'product_type',
    'dimension',
    'quantity',
    'delivery_days',
    'advance_payment',
})

# Wire name → Overrides attribute
OVERRIDE_FIELDS: dict[str, str] = {
    'base_override_eur': 'base',
    'startup_discount_eur': 'startup_discount',
    'first_order_discount_eur': 'first_order_discount',
    'delivery_surcharge_override': 'delivery_surcharge',
    'two_pcs_line_discount_eur': 'bulk_pair_discount',
    'advance_payment_discount_eur': 'advance_payment_discount',
    'custom_unit_adjust_eur': 'custom_unit_adjust',
    'custom_line_adjust_eur': 'custom_line_adjust',
}


@dataclass(frozen=True)
class OverridePolicy:
    """Field allow-lists for one entry point."""
    name: str
    public_fields: frozenset
    privileged_fields: frozenset = field(default_factory=frozenset)

    def sanitize(self, raw: Mapping[str, Any], is_privileged: bool) -> dict[str, Any]:
        """
        Strip fields the caller is not allowed to set.

        Privileged callers keep privileged fields unchanged; everyone loses
        unknown fields.
        """
        if not isinstance(raw, Mapping):
            return {}
        allowed = self.public_fields | self.privileged_fields if is_privileged else self.public_fields
        return {key: value for key, value in raw.items() if key in allowed}


PRICE_POLICY = OverridePolicy(
    name='price',
    public_fields=PUBLIC_FIELDS,
    privileged_fields=frozenset(OVERRIDE_FIELDS),
)

SHEETS_POLICY = OverridePolicy(
    name='price_sheets',
    public_fields=frozenset({
        'product_type',
        'dimension',
        'is_fast_order',
        'include_delivery',
        'has_cutting_board',
        'has_water_package',
        'is_first_order',
        'quantity',
        'delivery_days',
        'advance_payment',
        'is_startup_factory',
    }),
)

# A caller-computed breakdown is only trusted from privileged callers;
# everyone else gets the price recomputed from the inquiry configuration.
INQUIRY_POLICY = OverridePolicy(
    name='inquiry',
    public_fields=frozenset({'inquiry'}),
    privileged_fields=frozenset({'priceBreakdown'}),
)


def sanitize(raw: Mapping[str, Any], is_privileged: bool) -> dict[str, Any]:
    """Sanitize a /price payload."""
    return PRICE_POLICY.sanitize(raw, is_privileged)


def overrides_from(payload: Mapping[str, Any]) -> Overrides:
    """Build Overrides from an already sanitized and type-checked payload."""
    values: dict[str, Any] = {}
    for wire_name, attr in OVERRIDE_FIELDS.items():
        value = payload.get(wire_name)
        if value is None:
            continue
        if attr == 'delivery_surcharge':
            value = _delivery_map(value)
        values[attr] = value
    return Overrides(**values)


def _delivery_map(raw: Mapping[Any, float]) -> Optional[dict[DeliveryTier, float]]:
    result = {}
    for key, amount in raw.items():
        try:
            tier = DeliveryTier(int(key))
        except (TypeError, ValueError):
            raise ValidationError(
                f"Unsupported delivery tier '{key}' in 'delivery_surcharge_override'.",
                field='delivery_surcharge_override',
            ) from None
        result[tier] = amount
    return result
