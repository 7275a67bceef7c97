import pytest
from pydantic import ValidationError

from leadflow.adapters.config import AppConfig


def test_status_settings_must_be_lead_statuses():
    with pytest.raises(ValidationError):
        AppConfig(LOST_STATUS="lost_auto")
    with pytest.raises(ValidationError):
        AppConfig(NO_RESPONSE_STATUS="no_response")

    cfg = AppConfig(LOST_STATUS="junk")
    assert cfg.LOST_STATUS == "junk"


def test_status_settings_from_env(monkeypatch):
    monkeypatch.setenv("LEADFLOW_LOST_STATUS", "lost_auto")
    with pytest.raises(ValidationError):
        AppConfig()


def test_persist_strategy_is_normalised():
    assert AppConfig(MATCH_PERSIST_STRATEGY=" Replace ").MATCH_PERSIST_STRATEGY == "replace"
    with pytest.raises(ValidationError):
        AppConfig(MATCH_PERSIST_STRATEGY="merge")
