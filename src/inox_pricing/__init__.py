"""
INOX Pricing Package

Price calculation for configurable stainless-steel tables.
Resolves base price → per-unit adjustments → quantity and bulk discount,
from a versioned rule set or a pricing workbook.
"""

__version__ = "1.0.0"
