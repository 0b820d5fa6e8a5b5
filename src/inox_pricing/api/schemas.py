"""
Request models for the pricing API.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..engine.models import AdvancePayment, DeliveryTier, OrderConfig, ProductType
from ..policy.override_policy import overrides_from


class PriceInput(BaseModel):
    """Body of POST /price, after override sanitization."""
    model_config = ConfigDict(allow_inf_nan=False)

    product_type: ProductType
    dimension: Optional[str] = None
    quantity: int = Field(default=1, ge=1, le=500)
    delivery_days: DeliveryTier
    advance_payment: AdvancePayment = AdvancePayment.NONE

    # Privileged overrides
    base_override_eur: Optional[float] = None
    startup_discount_eur: Optional[float] = None
    first_order_discount_eur: Optional[float] = None
    delivery_surcharge_override: Optional[dict[str, float]] = None
    two_pcs_line_discount_eur: Optional[float] = None
    advance_payment_discount_eur: Optional[float] = None
    custom_unit_adjust_eur: Optional[float] = None
    custom_line_adjust_eur: Optional[float] = None

    def to_order(self) -> OrderConfig:
        return OrderConfig(
            product_type=self.product_type,
            dimension=self.dimension,
            quantity=self.quantity,
            delivery_days=self.delivery_days,
            advance_payment=self.advance_payment,
            overrides=overrides_from(self.model_dump()),
        )


def error_details(exc) -> list[dict]:
    """JSON-safe summary of pydantic validation errors."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
