"""Engine subpackage - core price computation and data models."""
from .pricing_engine import PricingEngine, compute_price
from .models import (
    AdvancePayment,
    DeliveryTier,
    OrderConfig,
    Overrides,
    PriceBreakdown,
    ProductType,
    RuleSet,
)

__all__ = [
    'PricingEngine', 'compute_price', 'AdvancePayment', 'DeliveryTier',
    'OrderConfig', 'Overrides', 'PriceBreakdown', 'ProductType', 'RuleSet',
]
