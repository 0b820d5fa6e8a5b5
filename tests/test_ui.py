import pytest

from conftest import API_KEY, make_settings
from inox_pricing.engine import DeliveryTier, OrderConfig, Overrides, ProductType, compute_price
from inox_pricing.ui.launch import streamlit_command
from inox_pricing.ui.sales_overrides import sales_overrides

PANEL_VALUES = {
    "advance_payment_discount_eur": 30,
    "custom_unit_adjust_eur": 15,
    "custom_line_adjust_eur": -20,
}


def quote(overrides: Overrides, rules):
    cfg = OrderConfig(
        product_type=ProductType.DIMENSIONED,
        dimension="200x100",
        quantity=2,
        delivery_days=DeliveryTier.DAYS_60,
        overrides=overrides,
    )
    return compute_price(cfg, rules)


@pytest.mark.parametrize("entered", [None, "", "wrong"])
def test_sales_panel_values_dropped_without_key(rules, entered):
    overrides = sales_overrides(PANEL_VALUES, entered, make_settings(api_key=API_KEY))

    assert overrides == Overrides()
    assert quote(overrides, rules).total == 2215


def test_sales_panel_disabled_when_no_key_configured():
    assert sales_overrides(PANEL_VALUES, "", make_settings()) == Overrides()


def test_sales_panel_values_applied_with_key(rules):
    overrides = sales_overrides(PANEL_VALUES, API_KEY, make_settings(api_key=API_KEY))

    assert overrides == Overrides(advance_payment_discount=30, custom_unit_adjust=15, custom_line_adjust=-20)
    assert quote(overrides, rules).total == 2165


def test_sales_panel_skips_blank_values():
    values = {"advance_payment_discount_eur": None, "custom_line_adjust_eur": -20}
    overrides = sales_overrides(values, API_KEY, make_settings(api_key=API_KEY))
    assert overrides == Overrides(custom_line_adjust=-20)


def test_streamlit_command_uses_settings():
    cmd = streamlit_command(make_settings(ui_port=9001, log_level="DEBUG"))

    assert cmd[1:4] == ["-m", "streamlit", "run"]
    assert cmd[4].endswith("app_streamlit.py")
    assert cmd[cmd.index("--server.port") + 1] == "9001"
    assert cmd[cmd.index("--server.headless") + 1] == "true"
    assert cmd[cmd.index("--logger.level") + 1] == "debug"
