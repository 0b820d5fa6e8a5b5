"""
Process-wide service objects shared by the API routes.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..config.settings import Settings, get_settings
from ..engine import PricingEngine
from ..rules.rule_set_loader import RuleSetProvider
from ..services.inquiry_mailer import InquiryMailer
from ..services.sheets_calculator import SheetsPriceCalculator
from ..services.sheets_source import SheetsWorkbook

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    settings: Settings
    provider: RuleSetProvider
    engine: PricingEngine
    mailer: InquiryMailer
    sheets: Optional[SheetsPriceCalculator] = None


def build_state(settings: Optional[Settings] = None) -> AppState:
    """Wire the provider, engine and collaborators from settings."""
    settings = settings or get_settings()
    provider = RuleSetProvider(settings.pricing_config, version=settings.pricing_config_label)

    sheets = None
    if settings.sheets_source:
        sheets = SheetsPriceCalculator(SheetsWorkbook(settings.sheets_source, settings.sheets_cache_seconds))
    else:
        logger.warning("SHEETS_SOURCE not set; spreadsheet price calculator disabled")

    return AppState(
        settings=settings,
        provider=provider,
        engine=PricingEngine(provider),
        mailer=InquiryMailer(settings),
        sheets=sheets,
    )
