"""
Tests for the shipping API Lambda handler.
"""
import json
import pytest
from decimal import Decimal
from unittest.mock import MagicMock, patch

import shipping_api
from conftest import api_event
from shipping_errors import GatewayError, LabelCreationFailed, NoRatesAvailable
from shipping_gateway import ShippingProvider

RATE_BODY = {
    "package_size": "single_card",
    "seller_zip": "94105",
    "buyer_zip": "10001",
    "declared_value": 10,
}

PROVIDER_RATES = [
    {"rate_id": "r_ups", "amount": "12.40", "provider": "UPS", "service": "Ground", "delivery_days": 5},
    {"rate_id": "r_usps", "amount": "4.75", "provider": "USPS", "service": "First Class", "delivery_days": 3},
]


@pytest.fixture
def provider():
    mock = MagicMock(spec=ShippingProvider)
    mock.request_rates.return_value = [dict(r) for r in PROVIDER_RATES]
    mock.create_label.return_value = {
        "label_url": "https://shippo.test/label.pdf",
        "tracking_number": "1Z999",
        "tracking_url": "https://ups.test/track/1Z999",
    }
    with patch.object(shipping_api, "get_shipping_provider", return_value=mock), \
         patch.object(shipping_api, "shipping_settings", return_value={"provider": "shippo"}):
        yield mock


def _call(path, method="POST", body=None):
    response = shipping_api.lambda_handler(api_event(path, method, body), None)
    return response["statusCode"], json.loads(response["body"])


class TestPackageSizes:

    def test_lists_catalog(self):
        status, body = _call("/api/package-sizes", "GET")
        assert status == 200
        assert body["success"] is True
        assert [s["id"] for s in body["sizes"]] == ["SINGLE_CARD", "SEALED_PRODUCT", "BULK"]
        assert body["sizes"][0] == {
            "id": "SINGLE_CARD",
            "name": "Single Card",
            "description": "For single cards in top loader",
            "max_value": "100",
        }


class TestGetShippingRate:

    def test_no_insurance_below_threshold(self, provider):
        status, body = _call("/api/get-shipping-rate", body=RATE_BODY)

        assert status == 200
        assert body["success"] is True
        assert body["insurance_required"] is False
        assert body["insurance_amount"] == 0
        quote = provider.request_rates.call_args.args[0]
        assert "insurance" not in quote

    def test_insurance_at_fifty(self, provider):
        status, body = _call("/api/get-shipping-rate", body=dict(RATE_BODY, declared_value=50))

        assert status == 200
        assert body["insurance_required"] is True
        assert body["insurance_amount"] == 50
        quote = provider.request_rates.call_args.args[0]
        assert quote["insurance"]["amount"] == 50
        assert quote["insurance"]["currency"] == "USD"
        assert all(r["insurance_included"] for r in body["rates"])

    def test_rates_sorted_and_shaped(self, provider):
        _, body = _call("/api/get-shipping-rate", body=RATE_BODY)
        assert [r["rate_id"] for r in body["rates"]] == ["r_usps", "r_ups"]
        assert body["rates"][0] == {
            "rate_id": "r_usps",
            "amount": "4.75",
            "provider": "USPS",
            "service": "First Class",
            "delivery_days": 3,
            "insurance_included": False,
        }

    def test_unknown_package_size(self, provider):
        status, body = _call("/api/get-shipping-rate", body=dict(RATE_BODY, package_size="unknown"))
        assert status == 400
        assert body == {"success": False, "error": "Invalid package size"}
        provider.request_rates.assert_not_called()

    def test_missing_field(self, provider):
        status, body = _call("/api/get-shipping-rate", body=dict(RATE_BODY, buyer_zip=""))
        assert status == 400
        assert body == {"success": False, "error": "Missing required shipping information"}

    def test_invalid_declared_value(self, provider):
        status, body = _call("/api/get-shipping-rate", body=dict(RATE_BODY, declared_value="ten"))
        assert status == 400
        assert body == {"success": False, "error": "Invalid declared value"}

    def test_exponent_declared_value(self, provider):
        status, body = _call("/api/get-shipping-rate", body=dict(RATE_BODY, declared_value="1e2"))
        assert status == 200
        assert body["insurance_amount"] == 100
        assert provider.request_rates.call_args.args[0]["insurance"]["amount"] == Decimal("100.00")

    def test_huge_declared_value_rejected(self, provider):
        status, body = _call("/api/get-shipping-rate", body=dict(RATE_BODY, declared_value="1e5000"))
        assert status == 400
        assert body == {"success": False, "error": "Invalid declared value"}
        provider.request_rates.assert_not_called()

    def test_no_rates(self, provider):
        provider.request_rates.side_effect = NoRatesAvailable()
        status, body = _call("/api/get-shipping-rate", body=RATE_BODY)
        assert status == 400
        assert body["success"] is False
        assert body["error"].startswith("No shipping options available")

    def test_gateway_error(self, provider):
        provider.request_rates.side_effect = GatewayError("Invalid token.")
        status, body = _call("/api/get-shipping-rate", body=RATE_BODY)
        assert status == 500
        assert body == {"success": False, "error": "Invalid token."}

    def test_malformed_body_is_empty(self, provider):
        event = api_event("/api/get-shipping-rate")
        event["body"] = "{not json"
        response = shipping_api.lambda_handler(event, None)
        assert response["statusCode"] == 400
        assert json.loads(response["body"])["error"] == "Missing required shipping information"


class TestCreateLabel:

    LABEL_BODY = {"rate_id": "r_usps", "seller_email": "seller@example.com", "declared_value": 30}

    def test_success(self, provider):
        status, body = _call("/api/create-label", body=self.LABEL_BODY)
        assert status == 200
        assert body == {
            "success": True,
            "label_url": "https://shippo.test/label.pdf",
            "tracking_number": "1Z999",
            "tracking_url": "https://ups.test/track/1Z999",
        }
        provider.create_label.assert_called_once_with("r_usps", "seller@example.com", 30)

    def test_missing_seller_email(self):
        # mock provider validates as well
        with patch.dict("os.environ", {"MOCK_SHIPPING": "true"}):
            status, body = _call("/api/create-label", body={"rate_id": "r_usps", "declared_value": 30})
        assert status == 400
        assert body == {"success": False, "error": "Missing required information"}

    def test_missing_seller_email_without_provider_config(self):
        # no MOCK_SHIPPING and no Shippo key: field validation still wins
        status, body = _call("/api/create-label", body={"rate_id": "r1", "declared_value": 30})
        assert status == 400
        assert body == {"success": False, "error": "Missing required information"}

    def test_non_success_status(self, provider):
        messages = [{"text": "Rate expired"}]
        provider.create_label.side_effect = LabelCreationFailed(messages)
        status, body = _call("/api/create-label", body=self.LABEL_BODY)
        assert status == 400
        assert body == {"success": False, "error": "Failed to create label", "details": messages}

    def test_gateway_error(self, provider):
        provider.create_label.side_effect = GatewayError("Shipping provider unreachable: timeout")
        status, body = _call("/api/create-label", body=self.LABEL_BODY)
        assert status == 500
        assert body["success"] is False


class TestRouting:

    def test_options_preflight(self):
        response = shipping_api.lambda_handler(api_event("/api/create-label", "OPTIONS"), None)
        assert response["statusCode"] == 200
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_method_not_allowed(self):
        status, body = _call("/api/package-sizes", "DELETE")
        assert status == 405
        assert body == {"success": False, "error": "Method not allowed"}

    def test_unknown_path(self):
        status, _ = _call("/api/track", "GET")
        assert status == 405

    def test_stage_prefix(self):
        status, body = _call("/prod/api/package-sizes", "GET")
        assert status == 200
        assert body["success"] is True

    def test_missing_api_key_is_500(self):
        status, body = _call("/api/get-shipping-rate", body=RATE_BODY)
        assert status == 500
        assert body["success"] is False
        assert "Shippo api key" in body["error"]

    def test_unexpected_error_is_500(self, provider):
        provider.request_rates.side_effect = KeyError("boom")
        status, body = _call("/api/get-shipping-rate", body=RATE_BODY)
        assert status == 500
        assert body["success"] is False

    def test_json_content_type(self):
        response = shipping_api.lambda_handler(api_event("/api/package-sizes", "GET"), None)
        assert response["headers"]["Content-Type"] == "application/json"
