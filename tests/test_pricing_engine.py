import math
from dataclasses import replace

import pytest

from inox_pricing.engine import (
    AdvancePayment,
    DeliveryTier,
    OrderConfig,
    Overrides,
    PricingEngine,
    ProductType,
    compute_price,
)
from inox_pricing.engine.pricing_engine import resolve_base, round_half_up
from inox_pricing.errors import ValidationError


def order(**kwargs) -> OrderConfig:
    defaults = dict(
        product_type=ProductType.DIMENSIONED,
        dimension="200x100",
        quantity=1,
        delivery_days=DeliveryTier.DAYS_60,
        advance_payment=AdvancePayment.NONE,
    )
    defaults.update(kwargs)
    return OrderConfig(**defaults)


class StaticProvider:
    """Minimal provider returning a fixed rule set."""

    def __init__(self, rules):
        self.rules = rules
        self.reloads = 0

    def load(self):
        return self.rules

    def reload(self):
        self.reloads += 1
        return self.rules


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------

def test_dimensioned_single_unit(rules):
    """200x100, 60 days, no advance: 1170 - 25 - 50 + 25 - 0."""
    result = compute_price(order(), rules)

    assert result.base == 1170
    assert result.unit == 1120
    assert result.subtotal == 1120
    assert result.bulk_discount_total == 0
    assert result.total == 1120


def test_table_only_pair_with_half_advance(rules):
    result = compute_price(
        order(
            product_type=ProductType.TABLE_ONLY,
            dimension=None,
            quantity=2,
            delivery_days=DeliveryTier.DAYS_45,
            advance_payment=AdvancePayment.HALF,
        ),
        rules,
    )

    assert result.unit == 405
    assert result.subtotal == 810
    assert result.bulk_discount_total == 25
    assert result.total == 785


def test_all_in_one_single_unit(rules):
    result = compute_price(
        order(product_type=ProductType.ALL_IN_ONE, dimension=None, delivery_days=DeliveryTier.DAYS_30),
        rules,
    )

    assert result.unit == 925
    assert result.total == 925


def test_authorized_overrides(rules):
    overrides = Overrides(advance_payment_discount=30, custom_unit_adjust=15, custom_line_adjust=-20)
    result = compute_price(order(quantity=2, overrides=overrides), rules)

    assert result.advance_payment_discount == 30
    assert result.unit == 1105
    assert result.subtotal == 2210
    assert result.bulk_discount_total == 25
    assert result.total == 2165


def test_dimension_ignored_for_fixed_products(rules):
    """Table-only and all-in-one prices do not depend on a dimension."""
    with_dim = compute_price(order(product_type=ProductType.TABLE_ONLY, dimension="140x70"), rules)
    without = compute_price(order(product_type=ProductType.TABLE_ONLY, dimension=None), rules)
    assert with_dim.total == without.total
    assert with_dim.base == 430


# ---------------------------------------------------------------------------
# Guarantees
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("quantity,pairs", [(1, 0), (2, 1), (3, 1), (4, 2), (7, 3)])
def test_bulk_discount_counts_full_pairs_only(rules, quantity, pairs):
    result = compute_price(order(quantity=quantity), rules)
    assert result.bulk_discount_total == 25 * pairs
    assert result.total == 1120 * quantity - 25 * pairs


def test_total_never_negative(rules):
    overrides = Overrides(base=10, custom_unit_adjust=-500, custom_line_adjust=-10000)
    result = compute_price(order(quantity=3, overrides=overrides), rules)

    assert result.total == 0
    assert result.unit == 0


def test_unit_floor_happens_before_custom_unit_adjust(rules):
    """Rule-driven price clamps at zero, then the manual per-unit knob applies."""
    overrides = Overrides(base=0, custom_unit_adjust=40)
    result = compute_price(order(overrides=overrides), rules)

    # 0 - 25 - 50 + 25 - 0 floors to 0, then +40
    assert result.unit == 40
    assert result.total == 40


def test_deterministic(rules):
    cfg = order(quantity=5, delivery_days=DeliveryTier.DAYS_7, advance_payment=AdvancePayment.FULL)
    first = compute_price(cfg, rules)
    second = compute_price(cfg, rules)
    assert first.to_dict(include_trace=True) == second.to_dict(include_trace=True)


def test_result_is_integer_currency(rules):
    overrides = Overrides(custom_unit_adjust=0.5)
    result = compute_price(order(quantity=3, overrides=overrides), rules)

    assert isinstance(result.total, int)
    assert isinstance(result.subtotal, int)
    # (1120 + 0.5) * 3 = 3361.5 rounds half up
    assert result.subtotal == 3362
    assert result.total == 3337


@pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, 0), (-1.5, -1), (2.49, 2)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def test_unknown_dimension_rejected(rules):
    with pytest.raises(ValidationError) as exc_info:
        compute_price(order(dimension="999x999"), rules)
    assert exc_info.value.field == "dimension"


def test_missing_dimension_rejected(rules):
    with pytest.raises(ValidationError):
        compute_price(order(dimension=None), rules)


def test_base_override_skips_dimension_lookup(rules):
    cfg = order(dimension=None, overrides=Overrides(base=1000))
    assert resolve_base(cfg, rules) == 1000
    assert compute_price(cfg, rules).total == 1000 - 25 - 50 + 25


@pytest.mark.parametrize("quantity", [0, -1, 501])
def test_quantity_out_of_range(rules, quantity):
    with pytest.raises(ValidationError) as exc_info:
        compute_price(order(quantity=quantity), rules)
    assert exc_info.value.field == "quantity"


def test_quantity_bounds_accepted(rules):
    assert compute_price(order(quantity=1), rules).total == 1120
    assert compute_price(order(quantity=500), rules).total == 1120 * 500 - 25 * 250


def test_non_integer_quantity_rejected(rules):
    with pytest.raises(ValidationError):
        compute_price(order(quantity=2.5), rules)


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_override_rejected(rules, value):
    with pytest.raises(ValidationError):
        compute_price(order(overrides=Overrides(custom_line_adjust=value)), rules)


def test_delivery_tier_missing_from_rules(rules):
    trimmed = replace(rules, delivery_surcharge={DeliveryTier.DAYS_60: 25})
    with pytest.raises(ValidationError) as exc_info:
        compute_price(order(delivery_days=DeliveryTier.DAYS_7), trimmed)
    assert exc_info.value.field == "delivery_days"


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

def test_delivery_surcharge_override_only_for_listed_tier(rules):
    overrides = Overrides(delivery_surcharge={DeliveryTier.DAYS_7: 0})

    fast = compute_price(order(delivery_days=DeliveryTier.DAYS_7, overrides=overrides), rules)
    slow = compute_price(order(delivery_days=DeliveryTier.DAYS_60, overrides=overrides), rules)

    assert fast.delivery_surcharge == 0
    assert fast.unit == 1170 - 25 - 50
    assert slow.delivery_surcharge == 25


def test_bulk_pair_override(rules):
    result = compute_price(order(quantity=4, overrides=Overrides(bulk_pair_discount=100)), rules)
    assert result.bulk_discount_total == 200


def test_zero_overrides_are_applied(rules):
    """An explicit zero replaces the rule value rather than being ignored."""
    overrides = Overrides(startup_discount=0, first_order_discount=0)
    result = compute_price(order(overrides=overrides), rules)
    assert result.unit == 1170 + 25


# ---------------------------------------------------------------------------
# Breakdown and engine
# ---------------------------------------------------------------------------

def test_breakdown_wire_format(rules):
    data = compute_price(order(), rules).to_dict()

    assert set(data) == {"base", "adjustments", "unit", "subtotal", "total"}
    assert data["adjustments"] == {
        "startup_discount": 25,
        "first_order_discount": 50,
        "delivery_surcharge": 25,
        "advance_payment_discount": 0,
        "bulk_discount_total": 0,
        "custom_unit_adjust": 0,
        "custom_line_adjust": 0,
    }


def test_trace_covers_each_step(rules):
    result = compute_price(order(quantity=2), rules)
    steps = [t.step for t in result.trace]

    assert steps[0] == "Base"
    assert "Bulk" in steps
    assert steps[-1] == "Total"
    assert "Total" in result.get_trace_text()


def test_engine_uses_provider(rules):
    provider = StaticProvider(rules)
    engine = PricingEngine(provider)

    assert engine.calculate(order()).total == 1120
    engine.reload_data()
    assert provider.reloads == 1
