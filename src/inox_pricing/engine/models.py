"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation. Tier keys
(product type, delivery days, advance payment) are closed enumerations so
an unsupported tier fails at parse time instead of as a missing dict key.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ProductType(str, Enum):
    DIMENSIONED = "dimensioned"
    TABLE_ONLY = "table_only"
    ALL_IN_ONE = "all_in_one"


class DeliveryTier(int, Enum):
    """Supported delivery lead times in days."""
    DAYS_7 = 7
    DAYS_30 = 30
    DAYS_45 = 45
    DAYS_60 = 60


class AdvancePayment(str, Enum):
    """Advance payment tiers (percentage of the order paid up front)."""
    NONE = "none"
    HALF = "50"
    FULL = "100"


@dataclass(frozen=True)
class TraceStep:
    """A single step in the price computation trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class Overrides:
    """
    Per-request values that supersede rule-set values for one computation.

    Only privileged callers get these through to the engine.
    """
    base: Optional[float] = None
    startup_discount: Optional[float] = None
    first_order_discount: Optional[float] = None
    delivery_surcharge: Optional[dict[DeliveryTier, float]] = None
    bulk_pair_discount: Optional[float] = None
    advance_payment_discount: Optional[float] = None
    custom_unit_adjust: Optional[float] = None
    custom_line_adjust: Optional[float] = None


@dataclass(frozen=True)
class OrderConfig:
    """A validated order configuration."""
    product_type: ProductType
    delivery_days: DeliveryTier
    quantity: int = 1
    dimension: Optional[str] = None
    advance_payment: AdvancePayment = AdvancePayment.NONE
    overrides: Overrides = field(default_factory=Overrides)


@dataclass(frozen=True)
class RuleSet:
    """Versioned table of pricing constants."""
    dimension_base: dict[str, float]
    base_table_only: float
    base_all_in_one: float
    startup_discount: float
    first_order_discount: dict[ProductType, float]
    delivery_surcharge: dict[DeliveryTier, float]
    advance_payment_discount: dict[AdvancePayment, float]
    bulk_pair_discount: float


@dataclass
class PriceBreakdown:
    """Complete result of a price computation."""
    base: float
    startup_discount: float
    first_order_discount: float
    delivery_surcharge: float
    advance_payment_discount: float
    bulk_discount_total: float
    custom_unit_adjust: float
    custom_line_adjust: float
    unit: int
    subtotal: int
    total: int
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the computation trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    @property
    def adjustments(self) -> dict[str, float]:
        return {
            "startup_discount": self.startup_discount,
            "first_order_discount": self.first_order_discount,
            "delivery_surcharge": self.delivery_surcharge,
            "advance_payment_discount": self.advance_payment_discount,
            "bulk_discount_total": self.bulk_discount_total,
            "custom_unit_adjust": self.custom_unit_adjust,
            "custom_line_adjust": self.custom_line_adjust,
        }

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self, include_trace: bool = False) -> dict:
        """Convert to the wire format returned by the API."""
        data = {
            "base": self.base,
            "adjustments": self.adjustments,
            "unit": self.unit,
            "subtotal": self.subtotal,
            "total": self.total,
        }
        if include_trace:
            data["trace"] = [
                {"step": t.step, "description": t.description, "value": t.value}
                for t in self.trace
            ]
        return data
