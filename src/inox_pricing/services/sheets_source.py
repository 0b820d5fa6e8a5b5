"""
Sheets Source - Spreadsheet-backed pricing values with a short-lived cache.

The workbook (a local .xlsx path or an export URL such as a Google Sheets
``/export?format=xlsx`` link) must contain the ``Big_Table`` and
``All_in_one`` sheets. Cells are addressed in A1 notation.
"""
import logging
import re
import threading
import time
from datetime import datetime
from typing import Callable, Optional

import pandas as pd

from ..errors import ConfigError

logger = logging.getLogger(__name__)

BIG_TABLE_SHEET = 'Big_Table'
ALL_IN_ONE_SHEET = 'All_in_one'
REQUIRED_SHEETS = (BIG_TABLE_SHEET, ALL_IN_ONE_SHEET)

_A1_RE = re.compile(r'^([A-Z]+)([1-9][0-9]*)$')


def a1_to_index(address: str) -> tuple[int, int]:
    """Convert an A1 address to zero-based (row, column)."""
    match = _A1_RE.match(address.strip().upper())
    if not match:
        raise ValueError(f"Invalid cell address: {address}")
    letters, digits = match.groups()
    col = 0
    for ch in letters:
        col = col * 26 + (ord(ch) - ord('A') + 1)
    return int(digits) - 1, col - 1


def _as_number(value) -> float:
    """Numeric cell value; blank or non-numeric cells count as 0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if pd.isna(number):
        return 0.0
    return number


class SheetsWorkbook:
    """
    Cached view over the pricing workbook.

    Sheets are re-read when older than ``cache_seconds``; force_refresh()
    re-reads immediately.
    """

    def __init__(
        self,
        source: str,
        cache_seconds: int = 30,
        reader: Optional[Callable[..., dict]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.cache_seconds = cache_seconds
        self._reader = reader or pd.read_excel
        self._clock = clock
        self._lock = threading.Lock()
        self._sheets: dict[str, pd.DataFrame] = {}
        self._last_refresh: Optional[float] = None
        self.refreshed_at: Optional[str] = None

    def _load_sheets(self) -> dict[str, pd.DataFrame]:
        logger.info("Refreshing pricing workbook %s", self.source)
        try:
            sheets = self._reader(self.source, sheet_name=None, header=None)
        except FileNotFoundError as e:
            raise ConfigError(f"Pricing workbook not found: {self.source}") from e
        except (OSError, ValueError) as e:
            raise ConfigError(f"Pricing workbook {self.source} could not be read: {e}") from e

        missing = [name for name in REQUIRED_SHEETS if name not in sheets]
        if missing:
            raise ConfigError(
                f'Sheet "{missing[0]}" not found. Available sheets: {", ".join(sheets)}',
                field=missing[0],
            )
        return {name: sheets[name] for name in REQUIRED_SHEETS}

    def refresh(self):
        """Re-read all sheets from the source."""
        sheets = self._load_sheets()
        with self._lock:
            self._sheets = sheets
            self._last_refresh = self._clock()
            self.refreshed_at = datetime.now().isoformat()
        logger.info("Pricing workbook refreshed at %s", self.refreshed_at)

    def ensure_fresh(self):
        """Refresh if the cache is empty or older than the TTL."""
        last = self._last_refresh
        if last is None or self._clock() - last > self.cache_seconds:
            self.refresh()

    def force_refresh(self) -> dict:
        """Refresh now, for manual cache clearing."""
        self.refresh()
        return {"success": True, "refreshedAt": self.refreshed_at}

    def current(self) -> 'WorkbookView':
        """Fresh, immutable view of the cached sheets."""
        self.ensure_fresh()
        with self._lock:
            return WorkbookView(dict(self._sheets))

    def cell(self, sheet: str, address: str) -> float:
        """Numeric value of a cell in the cached workbook."""
        with self._lock:
            view = WorkbookView(dict(self._sheets))
        return view.cell(sheet, address)


class WorkbookView:
    """One consistent generation of the workbook sheets."""

    def __init__(self, sheets: dict):
        self._sheets = sheets

    def cell(self, sheet: str, address: str) -> float:
        frame = self._sheets.get(sheet)
        if frame is None:
            raise ConfigError(f'Sheet "{sheet}" is not loaded', field=sheet)
        row, col = a1_to_index(address)
        if row >= frame.shape[0] or col >= frame.shape[1]:
            return 0.0
        return _as_number(frame.iat[row, col])
