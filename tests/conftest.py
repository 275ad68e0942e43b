"""
Shared fixtures for the shipping tests.
"""
import json
import pytest
from unittest.mock import MagicMock

import config_loader
import kms_utils

CONFIG_ENV_VARS = [
    "ENVIRONMENT",
    "APP_CONFIG_TABLE",
    "CONFIG_CACHE_TTL_SECONDS",
    "HTTP_TIMEOUT",
    "MOCK_SHIPPING",
    "SHIPPING_PROVIDER",
    "SHIPPO_API_KEY",
    "SHIPPO_API_BASE_URL",
    "SHIPPO_API_TIMEOUT_SECONDS",
    "SHIPPING_KMS_KEY_ARN",
]


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Each test starts without shipping env vars or cached AWS state."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config_loader.invalidate_cache()
    monkeypatch.setattr(config_loader, "_table", None)
    monkeypatch.setattr(kms_utils, "_kms_client", None)
    yield
    config_loader.invalidate_cache()


@pytest.fixture
def make_response():
    """Build a fake requests.Response."""
    def _make(status_code=200, payload=None, text=None):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        if payload is not None:
            response.json.return_value = payload
            response.text = json.dumps(payload)
        else:
            response.json.side_effect = ValueError("No JSON object could be decoded")
            response.text = text or ""
        return response
    return _make


@pytest.fixture
def shippo_rates():
    """Rates as Shippo returns them inside a shipment, deliberately unsorted."""
    return [
        {
            "object_id": "rate_ups_ground",
            "amount": "12.40",
            "currency": "USD",
            "provider": "UPS",
            "servicelevel": {"name": "Ground", "token": "ups_ground"},
            "estimated_days": 5,
        },
        {
            "object_id": "rate_usps_first",
            "amount": "4.75",
            "currency": "USD",
            "provider": "USPS",
            "servicelevel": {"name": "First Class Package", "token": "usps_first"},
            "estimated_days": 3,
        },
        {
            "object_id": "rate_usps_priority",
            "amount": "8.10",
            "currency": "USD",
            "provider": "USPS",
            "servicelevel": {"name": "Priority Mail", "token": "usps_priority"},
            "estimated_days": 2,
        },
    ]


def api_event(path, method="POST", body=None):
    """API Gateway proxy event."""
    return {
        "resource": path,
        "path": path,
        "httpMethod": method,
        "body": json.dumps(body) if body is not None else None,
    }
