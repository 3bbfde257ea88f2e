"""Configuration management for joint_finance.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in joint_finance/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("JOINT_FINANCE_DATA_DIR", _PROJECT_ROOT / "data"))
REPORTS_DIR = DATA_DIR / "reports"

# Database
DB_PATH = Path(
    os.getenv("JOINT_FINANCE_DB_PATH", DATA_DIR / "ledger.db")
).resolve()

# User preferences (display currency, joint view, period)
PREFERENCES_PATH = DATA_DIR / "preferences.json"

# Currency every aggregate is reported in unless the caller asks otherwise
BASE_CURRENCY = os.getenv("JOINT_FINANCE_BASE_CURRENCY", "ILS").upper()

# Trailing windows used by the health scorer
SAVINGS_WINDOW_DAYS = 30
EXPENSE_AVERAGE_WINDOW_DAYS = 90
EXPENSE_AVERAGE_MONTHS = 3

# Reimbursements pending longer than this are flagged overdue
REIMBURSEMENT_OVERDUE_DAYS = 30

# Default alert thresholds (percentage of budget used)
DEFAULT_ALERT_THRESHOLDS = (80.0, 90.0, 100.0)
LARGE_TRANSACTION_AMOUNT = 1000.0


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, REPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)
