"""Persisted display preferences (currency, joint view, budget period)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .config import BASE_CURRENCY, PREFERENCES_PATH
from .currency import normalize_currency
from .models import PERIODS

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {
    'preferred_currency': BASE_CURRENCY,
    'joint_view': False,
    'display_period': 'monthly',
}


def load_preferences(path: Path | None = None) -> Dict[str, Any]:
    target = path or PREFERENCES_PATH
    if not target.exists():
        return DEFAULT_PREFERENCES.copy()
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable preferences file %s: %s", target, exc)
        return DEFAULT_PREFERENCES.copy()
    if not isinstance(data, dict):
        return DEFAULT_PREFERENCES.copy()
    merged = DEFAULT_PREFERENCES.copy()
    merged.update({k: v for k, v in data.items() if k in DEFAULT_PREFERENCES})
    if merged['display_period'] not in PERIODS:
        merged['display_period'] = DEFAULT_PREFERENCES['display_period']
    return merged


def save_preferences(preferences: Dict[str, Any], path: Path | None = None) -> None:
    target = path or PREFERENCES_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open('w', encoding='utf-8') as handle:
        json.dump(preferences, handle, indent=2, sort_keys=True)


def update_preferences(path: Path | None = None, **changes: Any) -> Dict[str, Any]:
    """Validate and persist ``changes`` on top of the stored preferences.

    Raises:
        ValueError: For unknown keys, an unknown currency or period.
    """
    unknown = set(changes) - set(DEFAULT_PREFERENCES)
    if unknown:
        raise ValueError(f"Unknown preferences: {', '.join(sorted(unknown))}")
    if 'preferred_currency' in changes:
        changes['preferred_currency'] = normalize_currency(changes['preferred_currency'])
    if 'display_period' in changes and changes['display_period'] not in PERIODS:
        raise ValueError(f"Unknown display period '{changes['display_period']}'")
    if 'joint_view' in changes:
        changes['joint_view'] = bool(changes['joint_view'])

    preferences = load_preferences(path)
    preferences.update(changes)
    save_preferences(preferences, path)
    return preferences
