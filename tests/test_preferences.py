import json

import pytest

from joint_finance.preferences import DEFAULT_PREFERENCES, load_preferences, save_preferences, update_preferences


def test_missing_file_returns_defaults(tmp_path):
    assert load_preferences(tmp_path / "missing.json") == DEFAULT_PREFERENCES


def test_corrupt_file_returns_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_preferences(path) == DEFAULT_PREFERENCES


def test_non_dict_payload_returns_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    assert load_preferences(path) == DEFAULT_PREFERENCES


def test_round_trip_ignores_unknown_keys(tmp_path):
    path = tmp_path / "prefs.json"
    save_preferences({'preferred_currency': 'USD', 'joint_view': True, 'theme': 'dark'}, path)
    loaded = load_preferences(path)
    assert loaded['preferred_currency'] == 'USD'
    assert loaded['joint_view'] is True
    assert loaded['display_period'] == 'monthly'
    assert 'theme' not in loaded


def test_invalid_stored_period_falls_back(tmp_path):
    path = tmp_path / "prefs.json"
    save_preferences({'display_period': 'daily'}, path)
    assert load_preferences(path)['display_period'] == 'monthly'


def test_update_preferences_normalizes_and_persists(tmp_path):
    path = tmp_path / "nested" / "prefs.json"
    result = update_preferences(path, preferred_currency='nis', display_period='weekly', joint_view=1)
    assert result == {'preferred_currency': 'ILS', 'display_period': 'weekly', 'joint_view': True}
    assert load_preferences(path) == result


def test_update_preferences_rejects_bad_values(tmp_path):
    path = tmp_path / "prefs.json"
    with pytest.raises(ValueError):
        update_preferences(path, display_period='hourly')
    with pytest.raises(ValueError):
        update_preferences(path, colour='blue')
    assert not path.exists()
