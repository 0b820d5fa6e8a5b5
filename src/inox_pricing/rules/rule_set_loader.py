"""
Rule Set Loader - Loads, validates and caches the pricing rule set.

Reads the JSON rule-set file, validates it against the schema and converts
it into a RuleSet keyed by the tier enumerations. The provider memoizes the
result until invalidated and reports a short fingerprint of the content.
"""
import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import pydantic
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from ..engine.models import AdvancePayment, DeliveryTier, ProductType, RuleSet
from ..errors import ConfigError

logger = logging.getLogger(__name__)

BOM = '\ufeff'


def _number_only(value):
    # JSON numbers only: no numeric strings, no booleans
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    return value


Amount = Annotated[float, BeforeValidator(_number_only)]


class _Schema(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False, populate_by_name=True)


class FirstOrderSchema(_Schema):
    table_only: Amount
    all_in_one: Amount
    dimensioned: Amount


class DeliverySurchargeSchema(_Schema):
    days_7: Amount = Field(alias='7')
    days_30: Amount = Field(alias='30')
    days_45: Amount = Field(alias='45')
    days_60: Amount = Field(alias='60')


class AdvanceDiscountSchema(_Schema):
    none: Amount
    half: Amount = Field(alias='50')
    full: Amount = Field(alias='100')


class PricingSchema(_Schema):
    """On-disk rule-set format (config/pricing.v1.json)."""
    dimensionBaseEUR: dict[str, Amount]
    base_table_only: Amount
    base_all_in_one: Amount
    startup_discount_eur: Amount
    first_order_discount_by_type: FirstOrderSchema
    delivery_surcharge_eur: DeliverySurchargeSchema
    advance_payment_discount_eur: AdvanceDiscountSchema
    two_pcs_line_discount_eur: Amount

    def to_rule_set(self) -> RuleSet:
        first = self.first_order_discount_by_type
        delivery = self.delivery_surcharge_eur
        advance = self.advance_payment_discount_eur
        return RuleSet(
            dimension_base=dict(self.dimensionBaseEUR),
            base_table_only=self.base_table_only,
            base_all_in_one=self.base_all_in_one,
            startup_discount=self.startup_discount_eur,
            first_order_discount={
                ProductType.DIMENSIONED: first.dimensioned,
                ProductType.TABLE_ONLY: first.table_only,
                ProductType.ALL_IN_ONE: first.all_in_one,
            },
            delivery_surcharge={
                DeliveryTier.DAYS_7: delivery.days_7,
                DeliveryTier.DAYS_30: delivery.days_30,
                DeliveryTier.DAYS_45: delivery.days_45,
                DeliveryTier.DAYS_60: delivery.days_60,
            },
            advance_payment_discount={
                AdvancePayment.NONE: advance.none,
                AdvancePayment.HALF: advance.half,
                AdvancePayment.FULL: advance.full,
            },
            bulk_pair_discount=self.two_pcs_line_discount_eur,
        )


def content_fingerprint(data: dict) -> str:
    """Get a short SHA256 of the canonical JSON form of a rule set."""
    canonical = json.dumps(data, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()[:8]


def parse_rule_set(text: str, source: str = '<string>') -> tuple[RuleSet, str]:
    """
    Parse and validate rule-set JSON text.

    Returns (rule_set, fingerprint).
    """
    if text.startswith(BOM):
        text = text[len(BOM):]

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed pricing config {source}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid pricing config {source}: top level must be an object")

    try:
        parsed = PricingSchema.model_validate(raw)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field_path = '.'.join(str(part) for part in first['loc'])
        raise ConfigError(
            f"Invalid pricing config {source}: {field_path}: {first['msg']}",
            field=field_path,
        ) from e

    fingerprint = content_fingerprint(parsed.model_dump(by_alias=True))
    return parsed.to_rule_set(), fingerprint


@dataclass(frozen=True)
class LoadedRuleSet:
    """A validated rule set with its fingerprint."""
    rule_set: RuleSet
    fingerprint: str
    loaded_at: str


class RuleSetProvider:
    """
    Owns the process-wide rule set.

    load() is memoized between invalidations. A failed read never replaces
    the last good value; the provider stays stale and keeps raising until
    the source is fixed.
    """

    def __init__(self, path: Path, version: Optional[str] = None):
        self.path = Path(path)
        self.version = version or str(path)
        self._lock = threading.Lock()
        self._loaded: Optional[LoadedRuleSet] = None
        self._stale = True

    def _read(self) -> LoadedRuleSet:
        if not self.path.exists():
            raise ConfigError(f"Pricing config not found at {self.path}")
        try:
            text = self.path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Pricing config at {self.path} is unreadable: {e}") from e

        rule_set, fingerprint = parse_rule_set(text, source=str(self.path))
        return LoadedRuleSet(
            rule_set=rule_set,
            fingerprint=fingerprint,
            loaded_at=datetime.now().isoformat(),
        )

    def _current(self) -> LoadedRuleSet:
        with self._lock:
            if self._stale or self._loaded is None:
                fresh = self._read()
                self._loaded = fresh
                self._stale = False
                logger.info(
                    "Loaded pricing config %s (%d dimensions, hash %s)",
                    self.version, len(fresh.rule_set.dimension_base), fresh.fingerprint,
                )
            return self._loaded

    def load(self) -> RuleSet:
        """Get the current rule set, reading the source if needed."""
        return self._current().rule_set

    def fingerprint(self) -> str:
        """Get the short content hash of the current rule set."""
        return self._current().fingerprint

    def snapshot(self) -> LoadedRuleSet:
        """Get the rule set and its fingerprint as one consistent value."""
        return self._current()

    def invalidate(self):
        """Mark the cache stale; the next load() re-reads the source."""
        with self._lock:
            self._stale = True
        logger.info("Pricing config %s invalidated", self.version)

    def reload(self) -> RuleSet:
        """Invalidate and immediately re-read the source."""
        self.invalidate()
        return self.load()

    @property
    def last_good(self) -> Optional[LoadedRuleSet]:
        """The last successfully validated rule set, even if stale."""
        return self._loaded
