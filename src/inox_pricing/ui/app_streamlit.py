"""
Streamlit quote configurator for INOX tables.

Prices a configuration with the local rule set and shows the breakdown and
calculation trace. Overrides are offered in a sales-only panel.
"""
import streamlit as st
import pandas as pd
import sys
from pathlib import Path
from datetime import datetime

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from inox_pricing.config.settings import get_settings
from inox_pricing.engine import (
    AdvancePayment,
    DeliveryTier,
    OrderConfig,
    Overrides,
    PricingEngine,
    ProductType,
)
from inox_pricing.errors import ConfigError, ValidationError
from inox_pricing.rules.rule_set_loader import RuleSetProvider
from inox_pricing.ui.sales_overrides import sales_overrides


st.set_page_config(
    page_title="INOX Table Configurator",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_provider():
    """Get cached rule-set provider."""
    settings = get_settings()
    return RuleSetProvider(settings.pricing_config, version=settings.pricing_config_label)


settings = get_settings()
provider = get_provider()
engine = PricingEngine(provider)

try:
    loaded = provider.snapshot()
except ConfigError as e:
    st.error(f"Pricing configuration error: {e.message}")
    st.stop()

rule_set = loaded.rule_set

PRODUCT_LABELS = {
    ProductType.DIMENSIONED: "Custom Dimensioned Table",
    ProductType.TABLE_ONLY: "Table Only",
    ProductType.ALL_IN_ONE: "All-in-One",
}
ADVANCE_LABELS = {
    AdvancePayment.NONE: "No advance payment",
    AdvancePayment.HALF: "50% advance",
    AdvancePayment.FULL: "100% advance",
}


# ============================================================================
# SIDEBAR: Rule set status and sales overrides
# ============================================================================
with st.sidebar:
    st.header("⚙️ Rule Set")
    st.caption(f"**Version:** `{provider.version}`")
    st.caption(f"**Hash:** `{loaded.fingerprint}`")
    st.caption(f"**Dimensions:** {len(rule_set.dimension_base)}")
    if st.button("🔄 Reload config", use_container_width=True):
        try:
            provider.reload()
            st.rerun()
        except ConfigError as e:
            st.error(e.message)

    st.divider()
    sales_mode = st.toggle("Sales overrides", value=False)
    overrides = Overrides()
    if sales_mode:
        with st.container(border=True):
            entered_key = st.text_input("API key", type="password")
            advance_override = st.number_input("Advance discount override (€)", value=None, step=5.0)
            unit_adjust = st.number_input("Custom per-unit adjustment (€)", value=0.0, step=5.0)
            line_adjust = st.number_input("Custom per-line adjustment (€)", value=0.0, step=5.0)
            overrides = sales_overrides(
                {
                    "advance_payment_discount_eur": advance_override,
                    "custom_unit_adjust_eur": unit_adjust or None,
                    "custom_line_adjust_eur": line_adjust or None,
                },
                entered_key,
                settings,
            )
            if overrides == Overrides() and (advance_override is not None or unit_adjust or line_adjust):
                st.warning("Overrides ignored: API key missing or wrong.")


# ============================================================================
# MAIN CONTENT
# ============================================================================
st.title("INOX Table Configurator")
st.caption(f"v1.0 | Pricing Engine Active | {datetime.now().strftime('%Y-%m-%d')}")

col1, col2 = st.columns([1.2, 1.8], gap="large")

with col1:
    st.subheader("🛠️ Configuration")
    product_type = st.selectbox(
        "Product", list(ProductType), format_func=lambda p: PRODUCT_LABELS[p]
    )
    dimension = None
    if product_type == ProductType.DIMENSIONED:
        dimension = st.selectbox("Dimension (cm)", sorted(rule_set.dimension_base))
    quantity = st.number_input("Quantity", min_value=1, max_value=500, value=1, step=1)
    delivery = st.radio(
        "Delivery time", list(DeliveryTier), format_func=lambda d: f"{d.value} days", horizontal=True
    )
    advance = st.radio(
        "Advance payment", list(AdvancePayment), format_func=lambda a: ADVANCE_LABELS[a], horizontal=True
    )

with col2:
    st.subheader("💶 Price")
    order = OrderConfig(
        product_type=product_type,
        dimension=dimension,
        quantity=int(quantity),
        delivery_days=delivery,
        advance_payment=advance,
        overrides=overrides,
    )
    try:
        breakdown = engine.calculate(order)
    except ValidationError as e:
        st.error(e.message)
        st.stop()

    m1, m2, m3 = st.columns(3)
    m1.metric("Unit", f"€{breakdown.unit:,}")
    m2.metric("Subtotal", f"€{breakdown.subtotal:,}")
    m3.metric("Total", f"€{breakdown.total:,}")

    df = pd.DataFrame(
        [{"Component": k.replace("_", " ").title(), "EUR": v} for k, v in breakdown.adjustments.items()]
    )
    st.dataframe(df, hide_index=True, use_container_width=True)

    with st.expander("🔍 Calculation trace"):
        for t in breakdown.trace:
            if t.value:
                st.caption(f"**{t.step}**: {t.description} = `{t.value}`")
            else:
                st.caption(f"**{t.step}**: {t.description}")
