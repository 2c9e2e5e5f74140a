import json
import logging
from decimal import Decimal

from leasedesk.config import Settings
from leasedesk.core.logging import configure_logging
from leasedesk.services.store import AppState, default_financial_settings


def test_settings_read_financial_defaults_from_environment(monkeypatch):
    monkeypatch.setenv("DEFAULT_LABOR_MARGIN_PCT", "12.5")
    monkeypatch.setenv("APPROVAL_COST_THRESHOLD", "750")
    monkeypatch.setenv("APPROVAL_TASK_TYPES", '["maintenance", "inspection"]')

    settings = Settings(_env_file=None)

    assert settings.default_labor_margin_pct == Decimal("12.5")
    assert settings.approval_cost_threshold == Decimal("750")
    assert settings.approval_task_types == ["maintenance", "inspection"]


def test_app_state_starts_from_configured_financial_settings():
    financial = default_financial_settings()

    assert AppState().financial_settings == financial
    assert financial.price_review_threshold_pct == Decimal("10")


def test_json_logging_emits_structured_records(capsys):
    configure_logging("INFO", json_logs=True)
    try:
        logging.getLogger("leasedesk.tests").info("lease renewed", extra={"tenant_id": "tenant-1"})
        captured = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(captured)
        assert record["message"] == "lease renewed"
        assert record["tenant_id"] == "tenant-1"
        assert record["levelname"] == "INFO"
    finally:
        configure_logging("INFO", json_logs=False)
