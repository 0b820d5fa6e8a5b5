"""
Sheets Price Calculator - Prices Big Table and All-in-One orders from the
pricing workbook.

This path is independent of the rule-set engine: its step order is
base - startup + delivery - advance - first-order/fast-order - quantity,
and the quantity discount is taken per unit rather than per pair.
"""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..engine.pricing_engine import round_half_up
from ..errors import ConfigError, ValidationError
from .sheets_source import ALL_IN_ONE_SHEET, BIG_TABLE_SHEET, SheetsWorkbook, WorkbookView


BIG_TABLE_DIMENSIONS: dict[str, str] = {
    '140 x 70': 'C2',
    '140 x 80': 'C3',
    '140 x 90': 'C4',
    '140 x 100': 'C5',
    '160 x 70': 'C6',
    '160 x 80': 'C7',
    '160 x 90': 'C8',
    '160 x 100': 'C9',
    '180 x 70': 'C10',
    '180 x 80': 'C11',
    '180 x 90': 'C12',
    '180 x 100': 'C13',
    '200 x 70': 'C14',
    '200 x 80': 'C15',
    '200 x 90': 'C16',
    '200 x 100': 'C17',
}

BIG_TABLE_DISCOUNTS = {
    'startup_factory': 'E2',
    'fast_order_7_days': 'E3',
    'advance_payment_50': 'E4',
    'advance_payment_100': 'E5',
    'quantity_2_plus': 'E6',
}
# (max days, cell); the last entry covers everything above 45 days
BIG_TABLE_DELIVERY = ((30, 'E11'), (45, 'E10'), (None, 'E9'))

ALL_IN_ONE_DISCOUNTS = {
    'startup_factory': 'E2',
    'first_order_raw_table': 'E3',
    'first_order_all_in_one': 'E4',
    'advance_payment_50': 'E5',
    'advance_payment_100': 'E6',
    'quantity_2_plus': 'E7',
}
ALL_IN_ONE_DELIVERY = ((30, 'E12'), (45, 'E11'), (None, 'E10'))

PACKAGES = [
    {
        'id': 'raw_table',
        'name': 'Raw Table Only',
        'has_cutting_board': False,
        'has_water_package': False,
        'description': 'Basic stainless steel table without addons',
        'cell': 'C2',
    },
    {
        'id': 'cutting_board_package',
        'name': 'Cutting Board Package',
        'has_cutting_board': True,
        'has_water_package': False,
        'description': 'Table with cutting board addon',
        'cell': 'C3',
    },
    {
        'id': 'water_package',
        'name': 'Water Package',
        'has_cutting_board': False,
        'has_water_package': True,
        'description': 'Table with water system addon',
        'cell': 'C4',
    },
    {
        'id': 'all_in_one',
        'name': 'All-in-One Package',
        'has_cutting_board': True,
        'has_water_package': True,
        'description': 'Complete package with both cutting board and water system',
        'cell': 'C5',
    },
]


class PriceRequest(BaseModel):
    """Request body for spreadsheet pricing."""
    product_type: Literal['big_table', 'all_in_one']

    # Big Table
    dimension: Optional[str] = None
    is_fast_order: bool = False
    include_delivery: bool = True

    # All-in-One
    has_cutting_board: bool = False
    has_water_package: bool = False
    is_first_order: bool = False

    quantity: int = Field(default=1, ge=1, le=500)
    delivery_days: int = Field(ge=7, le=60)
    advance_payment: float = Field(default=0, ge=0, le=100)
    is_startup_factory: bool = True


def _delivery_cell(tiers, delivery_days: int) -> str:
    for max_days, cell in tiers:
        if max_days is None or delivery_days <= max_days:
            return cell
    raise AssertionError("delivery tiers must end with a catch-all")


def _advance_discount(discounts: dict[str, float], advance_payment: float) -> float:
    if advance_payment >= 100:
        return discounts['advance_payment_100']
    if advance_payment >= 50:
        return discounts['advance_payment_50']
    return 0.0


def _package_for(has_cutting_board: bool, has_water_package: bool) -> dict:
    for package in PACKAGES:
        if (package['has_cutting_board'], package['has_water_package']) == (has_cutting_board, has_water_package):
            return package
    raise AssertionError("every addon combination has a package")


class SheetsPriceCalculator:
    """Step-based pricing from the Big_Table and All_in_one sheets."""

    def __init__(self, workbook: SheetsWorkbook):
        self.workbook = workbook

    def calculate_price(self, request: PriceRequest) -> dict:
        """Price a request; dispatches on product type."""
        view = self.workbook.current()
        if request.product_type == 'big_table':
            result = self._big_table(view, request)
        else:
            result = self._all_in_one(view, request)
        return {
            'success': True,
            'product_type': request.product_type,
            **result,
            'calculation_timestamp': datetime.now(timezone.utc).isoformat(),
        }

    def _big_table(self, view: WorkbookView, request: PriceRequest) -> dict:
        if not request.dimension:
            raise ValidationError("Dimension is required for big_table product type", field='dimension')
        if request.dimension not in BIG_TABLE_DIMENSIONS:
            raise ValidationError(
                f"Invalid dimension: {request.dimension}. "
                f"Valid dimensions: {', '.join(BIG_TABLE_DIMENSIONS)}",
                field='dimension',
            )

        base_price = view.cell(BIG_TABLE_SHEET, BIG_TABLE_DIMENSIONS[request.dimension])
        if not base_price:
            raise ConfigError(f"Price not found for dimension: {request.dimension}", field='dimension')
        delivery_fee = view.cell(BIG_TABLE_SHEET, _delivery_cell(BIG_TABLE_DELIVERY, request.delivery_days))
        discounts = {name: view.cell(BIG_TABLE_SHEET, cell) for name, cell in BIG_TABLE_DISCOUNTS.items()}

        startup = discounts['startup_factory'] if request.is_startup_factory else 0.0
        advance = _advance_discount(discounts, request.advance_payment)
        fast_order = (
            discounts['fast_order_7_days']
            if request.is_fast_order and request.delivery_days <= 7 else 0.0
        )
        quantity = discounts['quantity_2_plus'] if request.quantity >= 2 else 0.0

        step_price = base_price - startup
        if request.include_delivery:
            step_price += delivery_fee
        step_price -= advance
        step_price -= fast_order
        step_price -= quantity

        return {
            'base_price': base_price,
            'discounts_applied': startup + fast_order + advance + quantity,
            'delivery_fee': delivery_fee,
            'price_per_unit': step_price,
            'quantity': request.quantity,
            'total_price': max(0, round_half_up(step_price * request.quantity)),
            'dimension': request.dimension,
            'delivery_days': request.delivery_days,
            'advance_payment': request.advance_payment,
        }

    def _all_in_one(self, view: WorkbookView, request: PriceRequest) -> dict:
        package = _package_for(request.has_cutting_board, request.has_water_package)

        base_price = view.cell(ALL_IN_ONE_SHEET, package['cell'])
        delivery_fee = view.cell(ALL_IN_ONE_SHEET, _delivery_cell(ALL_IN_ONE_DELIVERY, request.delivery_days))
        discounts = {name: view.cell(ALL_IN_ONE_SHEET, cell) for name, cell in ALL_IN_ONE_DISCOUNTS.items()}

        startup = discounts['startup_factory'] if request.is_startup_factory else 0.0
        advance = _advance_discount(discounts, request.advance_payment)
        first_order = 0.0
        if request.is_first_order:
            first_order = (
                discounts['first_order_all_in_one'] if package['id'] == 'all_in_one'
                else discounts['first_order_raw_table']
            )
        quantity = discounts['quantity_2_plus'] if request.quantity >= 2 else 0.0

        step_price = base_price - startup
        if request.include_delivery:
            step_price += delivery_fee
        step_price -= advance
        step_price -= first_order
        step_price -= quantity

        return {
            'base_price': base_price,
            'package_type': package['id'],
            'discounts_applied': startup + first_order + advance + quantity,
            'delivery_fee': delivery_fee,
            'price_per_unit': step_price,
            'quantity': request.quantity,
            'total_price': max(0, round_half_up(step_price * request.quantity)),
            'has_cutting_board': request.has_cutting_board,
            'has_water_package': request.has_water_package,
            'delivery_days': request.delivery_days,
            'advance_payment': request.advance_payment,
        }

    def force_refresh_cache(self) -> dict:
        return self.workbook.force_refresh()

    @staticmethod
    def available_dimensions() -> list[str]:
        return list(BIG_TABLE_DIMENSIONS)

    @staticmethod
    def available_packages() -> list[dict]:
        return [{k: v for k, v in p.items() if k != 'cell'} for p in PACKAGES]
