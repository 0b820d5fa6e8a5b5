import json
import os
import sys
from pathlib import Path

import pandas as pd
import pytest
from fastapi.testclient import TestClient

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from inox_pricing.api.main import create_app
from inox_pricing.api.state import AppState
from inox_pricing.config.settings import Settings, reset_settings
from inox_pricing.engine import PricingEngine
from inox_pricing.errors import NotificationError
from inox_pricing.rules.rule_set_loader import RuleSetProvider, parse_rule_set
from inox_pricing.services.inquiry_mailer import InquiryMailer
from inox_pricing.services.sheets_calculator import SheetsPriceCalculator
from inox_pricing.services.sheets_source import SheetsWorkbook, a1_to_index

PROJECT_ROOT = Path(__file__).resolve().parent.parent
REFERENCE_CONFIG = PROJECT_ROOT / 'config' / 'pricing.v1.json'

API_KEY = 'devkey123'


@pytest.fixture(autouse=True)
def clear_pricing_env(monkeypatch):
    for key in [
        'API_KEY',
        'PRICING_CONFIG',
        'CORS_ORIGIN',
        'RATE_LIMIT_PER_MINUTE',
        'SHEETS_SOURCE',
        'MJ_APIKEY_PUBLIC',
        'MJ_APIKEY_PRIVATE',
        'EMAIL_CUSTOMER_COPY',
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def reference_config() -> dict:
    """The shipped reference rule set as raw JSON data."""
    return json.loads(REFERENCE_CONFIG.read_text(encoding='utf-8'))


@pytest.fixture
def rules(reference_config):
    """The shipped reference rule set, parsed."""
    rule_set, _ = parse_rule_set(json.dumps(reference_config))
    return rule_set


@pytest.fixture
def write_config(tmp_path):
    """Write rule-set data to a temporary file and return its path."""
    path = tmp_path / 'pricing.json'

    def _write(data, bom: bool = False) -> Path:
        text = data if isinstance(data, str) else json.dumps(data)
        if bom:
            text = '\ufeff' + text
        path.write_text(text, encoding='utf-8')
        return path

    return _write


def _frame(cells: dict) -> pd.DataFrame:
    """Build a header-less sheet from A1 address → value."""
    frame = pd.DataFrame([[None] * 6 for _ in range(20)])
    for address, value in cells.items():
        row, col = a1_to_index(address)
        frame.iat[row, col] = value
    return frame


BIG_TABLE_CELLS = {
    # C2..C17: 140 x 70 = 1000, then +10 per dimension; 200 x 100 = 1150
    **{f'C{row}': 1000 + 10 * (row - 2) for row in range(2, 18)},
    'E2': 25,   # startup
    'E3': 50,   # fast order
    'E4': 30,   # advance 50%
    'E5': 60,   # advance 100%
    'E6': 20,   # quantity 2+
    'E9': 25,   # delivery > 45 days
    'E10': 100,  # delivery <= 45 days
    'E11': 200,  # delivery <= 30 days
}

ALL_IN_ONE_CELLS = {
    'C2': 600,
    'C3': 700,
    'C4': 750,
    'C5': 900,
    'E2': 25,
    'E3': 50,
    'E4': 150,
    'E5': 30,
    'E6': 60,
    'E7': 20,
    'E10': 25,
    'E11': 100,
    'E12': 200,
}


class FakeSheetReader:
    """Stands in for pandas.read_excel; returns in-memory sheets."""

    def __init__(self, sheets=None):
        self.sheets = sheets if sheets is not None else {
            'Big_Table': _frame(BIG_TABLE_CELLS),
            'All_in_one': _frame(ALL_IN_ONE_CELLS),
        }
        self.calls = 0

    def __call__(self, source, sheet_name=None, header=None):
        self.calls += 1
        return dict(self.sheets)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def sheet_reader():
    return FakeSheetReader()


@pytest.fixture
def sheets_calculator(sheet_reader):
    workbook = SheetsWorkbook('pricing.xlsx', cache_seconds=30, reader=sheet_reader)
    return SheetsPriceCalculator(workbook)


class FakeTransport:
    """Records messages instead of calling Mailjet."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    def send(self, sender, recipients, subject, html_body):
        if self.fail:
            raise NotificationError("Mailjet API error: 401 Unauthorized")
        self.messages.append({
            'from': sender,
            'to': recipients,
            'subject': subject,
            'html': html_body,
        })
        return {'Messages': [{'Status': 'success'}]}

    def check(self):
        if self.fail:
            raise NotificationError("HTTP 401: Unauthorized")


def make_settings(config_path: Path = REFERENCE_CONFIG, **kwargs) -> Settings:
    values = dict(
        project_root=PROJECT_ROOT,
        pricing_config=config_path,
        pricing_config_label='pricing.v1.json',
        rate_limit_per_minute=1000,
    )
    values.update(kwargs)
    return Settings(**values)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_client(transport, sheet_reader):
    """
    Factory for a TestClient over an app built from explicit state.

    Keyword arguments override Settings fields; ``sheets=False`` leaves the
    spreadsheet calculator unconfigured.
    """
    def _make(config_path: Path = REFERENCE_CONFIG, sheets: bool = True, mail_transport=None, **kwargs):
        settings = make_settings(config_path, **kwargs)
        provider = RuleSetProvider(settings.pricing_config, version=settings.pricing_config_label)
        state = AppState(
            settings=settings,
            provider=provider,
            engine=PricingEngine(provider),
            mailer=InquiryMailer(settings, transport=mail_transport or transport),
            sheets=SheetsPriceCalculator(SheetsWorkbook('pricing.xlsx', reader=sheet_reader)) if sheets else None,
        )
        return TestClient(create_app(state))

    return _make
