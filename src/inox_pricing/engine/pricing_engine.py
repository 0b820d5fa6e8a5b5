"""
Pricing Engine - Core price computation for INOX tables.

compute_price() is a pure function of an order configuration and a rule set:
- Base price by dimension or product type (override wins)
- Per-unit adjustments: startup, first-order, delivery surcharge, advance payment
- Quantity extension and per-pair bulk discount
- Per-quote manual adjustments (per unit and per line)

PricingEngine binds the function to a rule-set provider for the request layer.
"""
import math
from typing import Optional

from ..errors import ValidationError
from .models import (
    OrderConfig,
    PriceBreakdown,
    ProductType,
    RuleSet,
)

MIN_QUANTITY = 1
MAX_QUANTITY = 500


def round_half_up(value: float) -> int:
    """Round to the nearest integer currency unit, halves towards +inf."""
    return int(math.floor(value + 0.5))


def _require_finite(value: Optional[float], name: str) -> Optional[float]:
    if value is not None and not math.isfinite(value):
        raise ValidationError(f"'{name}' must be a finite number.", field=name)
    return value


def resolve_base(order: OrderConfig, rules: RuleSet) -> float:
    """Resolve the base unit price before any adjustment."""
    if order.overrides.base is not None:
        return order.overrides.base

    if order.product_type == ProductType.DIMENSIONED:
        if not order.dimension or order.dimension not in rules.dimension_base:
            raise ValidationError("Missing or invalid 'dimension'.", field="dimension")
        return rules.dimension_base[order.dimension]
    if order.product_type == ProductType.TABLE_ONLY:
        return rules.base_table_only
    if order.product_type == ProductType.ALL_IN_ONE:
        return rules.base_all_in_one
    raise ValidationError(f"Unsupported product type: {order.product_type!r}", field="product_type")


def _validate_order(order: OrderConfig, rules: RuleSet):
    """Reject constraint violations the caller's schema did not catch."""
    if not isinstance(order.quantity, int) or isinstance(order.quantity, bool):
        raise ValidationError("'quantity' must be an integer.", field="quantity")
    if not MIN_QUANTITY <= order.quantity <= MAX_QUANTITY:
        raise ValidationError(
            f"'quantity' must be between {MIN_QUANTITY} and {MAX_QUANTITY}.", field="quantity"
        )
    if order.product_type not in rules.first_order_discount:
        raise ValidationError("Unknown 'product_type'.", field="product_type")
    if order.delivery_days not in rules.delivery_surcharge:
        raise ValidationError("Unsupported 'delivery_days'.", field="delivery_days")
    if order.advance_payment not in rules.advance_payment_discount:
        raise ValidationError("Unsupported 'advance_payment'.", field="advance_payment")

    ov = order.overrides
    for name in (
        'base', 'startup_discount', 'first_order_discount', 'bulk_pair_discount',
        'advance_payment_discount', 'custom_unit_adjust', 'custom_line_adjust',
    ):
        _require_finite(getattr(ov, name), name)
    for tier, amount in (ov.delivery_surcharge or {}).items():
        _require_finite(amount, f"delivery_surcharge[{int(tier)}]")


def compute_price(order: OrderConfig, rules: RuleSet) -> PriceBreakdown:
    """
    Compute the price breakdown for one order configuration.

    Args:
        order: Validated order configuration (overrides already authorized)
        rules: Active rule set

    Returns:
        PriceBreakdown with every component that went into the total

    Raises:
        ValidationError: unknown dimension, missing field or violated constraint
    """
    _validate_order(order, rules)
    ov = order.overrides

    base = resolve_base(order, rules)

    startup = ov.startup_discount if ov.startup_discount is not None else rules.startup_discount
    first_order = (
        ov.first_order_discount if ov.first_order_discount is not None
        else rules.first_order_discount[order.product_type]
    )
    delivery_overrides = ov.delivery_surcharge or {}
    if order.delivery_days in delivery_overrides:
        delivery = delivery_overrides[order.delivery_days]
    else:
        delivery = rules.delivery_surcharge[order.delivery_days]
    advance = (
        ov.advance_payment_discount if ov.advance_payment_discount is not None
        else rules.advance_payment_discount[order.advance_payment]
    )
    custom_unit = ov.custom_unit_adjust if ov.custom_unit_adjust is not None else 0
    custom_line = ov.custom_line_adjust if ov.custom_line_adjust is not None else 0

    # Floor applies to the rule-driven price only, before the manual per-unit knob
    unit_before_qty = max(0, base - startup - first_order + delivery - advance) + custom_unit

    qty = order.quantity
    subtotal_before_line_adj = unit_before_qty * qty

    pairs = qty // 2
    per_pair = ov.bulk_pair_discount if ov.bulk_pair_discount is not None else rules.bulk_pair_discount
    bulk_discount = per_pair * pairs if qty >= 2 else 0

    total = max(0, round_half_up(subtotal_before_line_adj - bulk_discount + custom_line))

    breakdown = PriceBreakdown(
        base=base,
        startup_discount=startup,
        first_order_discount=first_order,
        delivery_surcharge=delivery,
        advance_payment_discount=advance,
        bulk_discount_total=bulk_discount,
        custom_unit_adjust=custom_unit,
        custom_line_adjust=custom_line,
        unit=max(0, round_half_up(unit_before_qty)),
        subtotal=round_half_up(subtotal_before_line_adj),
        total=total,
    )

    source = "override" if ov.base is not None else order.product_type.value
    breakdown.add_trace("Base", f"Resolved base price ({source})", f"€{base:g}")
    breakdown.add_trace("Startup", "Startup discount", f"-€{startup:g}")
    breakdown.add_trace("First Order", "First-order discount", f"-€{first_order:g}")
    breakdown.add_trace("Delivery", f"{int(order.delivery_days)} day delivery surcharge", f"+€{delivery:g}")
    breakdown.add_trace("Advance", f"Advance payment '{order.advance_payment.value}'", f"-€{advance:g}")
    if custom_unit:
        breakdown.add_trace("Unit Adjust", "Custom per-unit adjustment", f"€{custom_unit:+g}")
    breakdown.add_trace("Extension", f"Quantity {qty} × €{unit_before_qty:g}", f"€{subtotal_before_line_adj:g}")
    if bulk_discount:
        breakdown.add_trace("Bulk", f"{pairs} pair(s) × €{per_pair:g}", f"-€{bulk_discount:g}")
    if custom_line:
        breakdown.add_trace("Line Adjust", "Custom per-line adjustment", f"€{custom_line:+g}")
    breakdown.add_trace("Total", "Rounded and floored at zero", f"€{total}")

    return breakdown


class PricingEngine:
    """
    Prices orders against the rule set supplied by a provider.

    The provider owns loading and caching; the engine asks it for the current
    rule set on every call and never keeps one of its own.
    """

    def __init__(self, provider):
        self.provider = provider

    def calculate(self, order: OrderConfig) -> PriceBreakdown:
        """Price an order against the provider's current rule set."""
        return compute_price(order, self.provider.load())

    def reload_data(self) -> RuleSet:
        """Re-read the rule set from its source."""
        return self.provider.reload()
