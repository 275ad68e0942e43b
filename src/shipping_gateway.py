# shipping_gateway.py
# Boundary to the external shipping provider. Everything provider-specific
# (endpoints, payload shapes, status codes) stays in this module; callers
# only see RateOption / LabelResult dicts and shipping_errors exceptions.
#
# RateOption:  {rate_id, amount, provider, service, delivery_days}
# LabelResult: {label_url, tracking_number, tracking_url}

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from config_loader import ConfigError
from rate_request import missing_fields
from shipping_errors import GatewayError, LabelCreationFailed, MissingField, NoRatesAvailable

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

LABEL_FIELDS = ["rate_id", "seller_email", "declared_value"]
LABEL_FILE_TYPE = "PDF"


def validate_label_request(rate_id: Any, seller_email: Any, declared_value: Any) -> None:
    missing = missing_fields(
        {"rate_id": rate_id, "seller_email": seller_email, "declared_value": declared_value},
        LABEL_FIELDS,
    )
    if missing:
        raise MissingField("Missing required information", missing)


class ShippingProvider(ABC):
    """Base class for shipping providers."""

    name: str

    @abstractmethod
    def request_rates(self, quote: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Quote a shipment; raises NoRatesAvailable on an empty result."""

    @abstractmethod
    def create_label(self, rate_id: str, seller_email: str, declared_value: Any) -> Dict[str, Any]:
        """Purchase a label for a previously quoted rate."""


# ---------- Shippo ----------

class ShippoProvider(ShippingProvider):
    """Shippo REST integration (synchronous shipments and transactions)."""

    name = "shippo"

    def __init__(self, api_key: str, base_url: str = "https://api.goshippo.com",
                 timeout: float = 30, session: Optional[requests.Session] = None):
        if not api_key:
            raise ConfigError("Missing Shippo api key")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"ShippoToken {api_key}",
            "Content-Type": "application/json",
        }

    # ---- transport ----

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.strip('/')}/"
        try:
            response = self.session.post(url, headers=self.headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Shippo request to {path} failed: {e}")
            raise GatewayError(f"Shipping provider unreachable: {e}")

        if not response.ok:
            message = _error_message(response)
            logger.error(f"Shippo {path} returned {response.status_code}: {message}")
            raise GatewayError(message, provider_status=response.status_code)

        try:
            return response.json()
        except ValueError:
            raise GatewayError(f"Shipping provider returned invalid JSON from {path}")

    # ---- rates ----

    def request_rates(self, quote: Dict[str, Any]) -> List[Dict[str, Any]]:
        shipment_data: Dict[str, Any] = {
            "address_from": _shippo_addr(quote["from_address"]),
            "address_to": _shippo_addr(quote["to_address"]),
            "parcels": [_shippo_parcel(quote["parcel"])],
            "async": False,
        }
        insurance = quote.get("insurance")
        if insurance:
            shipment_data["extra"] = {
                "insurance": {
                    "amount": f"{insurance['amount']:f}",
                    "currency": insurance["currency"],
                }
            }

        shipment = self._post("shipments", shipment_data)

        if shipment.get("messages"):
            logger.warning(f"Shippo messages: {shipment['messages']}")

        raw_rates = shipment.get("rates") or []
        logger.info(f"Shippo returned {len(raw_rates)} rates for shipment {shipment.get('object_id')}")
        logger.debug("Available rates: %s", raw_rates)

        if not raw_rates:
            raise NoRatesAvailable()
        return [_rate_option(r) for r in raw_rates]

    # ---- labels ----

    def create_label(self, rate_id: str, seller_email: str, declared_value: Any) -> Dict[str, Any]:
        validate_label_request(rate_id, seller_email, declared_value)

        transaction = self._post("transactions", {
            "rate": rate_id,
            "label_file_type": LABEL_FILE_TYPE,
            "async": False,
        })

        status = transaction.get("status")
        if status != "SUCCESS":
            logger.warning(f"Shippo transaction for rate {rate_id} ended with status {status}")
            raise LabelCreationFailed(transaction.get("messages") or [])

        logger.info(f"Label created for rate {rate_id}: {transaction.get('tracking_number')}")
        return {
            "label_url": transaction.get("label_url"),
            "tracking_number": transaction.get("tracking_number"),
            "tracking_url": transaction.get("tracking_url_provider"),
        }


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"Shipping provider error {response.status_code}"
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("message") or data.get("messages")
        if detail:
            return detail if isinstance(detail, str) else json.dumps(detail)
    return json.dumps(data)

def _shippo_addr(a: Dict[str, Any]) -> Dict[str, Any]:
    return {"zip": a["zip"], "country": a.get("country", "US")}

def _shippo_parcel(p: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "length": str(p["length"]),
        "width": str(p["width"]),
        "height": str(p["height"]),
        "distance_unit": p["distance_unit"],
        "weight": str(p["weight"]),
        "mass_unit": p["mass_unit"],
    }

def _rate_option(r: Dict[str, Any]) -> Dict[str, Any]:
    service = r.get("servicelevel") or {}
    if isinstance(service, str):
        service_name = service
    else:
        service_name = service.get("name")
    return {
        "rate_id": r.get("object_id"),
        "amount": r.get("amount"),
        "provider": r.get("provider"),
        "service": service_name,
        "delivery_days": r.get("estimated_days"),
    }


# ---------- Mock ----------

class MockProvider(ShippingProvider):
    """Network-free provider for local development (MOCK_SHIPPING=true)."""

    name = "mock"

    def request_rates(self, quote: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"rate_id": "mock:UPS:Ground",         "amount": "9.95",  "provider": "UPS",   "service": "Ground",        "delivery_days": 5},
            {"rate_id": "mock:USPS:Priority",      "amount": "7.50",  "provider": "USPS",  "service": "Priority Mail", "delivery_days": 3},
            {"rate_id": "mock:FedEx:HomeDelivery", "amount": "11.40", "provider": "FedEx", "service": "Home Delivery", "delivery_days": 4},
        ]

    def create_label(self, rate_id: str, seller_email: str, declared_value: Any) -> Dict[str, Any]:
        validate_label_request(rate_id, seller_email, declared_value)
        return {
            "label_url": f"https://example.com/labels/{str(rate_id).replace(':', '_')}.pdf",
            "tracking_number": "TRACKMOCK1234567890",
            "tracking_url": "https://example.com/track/TRACKMOCK1234567890",
        }


# ---------- Provider selection ----------

def get_shipping_provider(settings: Dict[str, Any]) -> ShippingProvider:
    """
    settings (see config_loader.shipping_settings):
    {"provider": "shippo" | "mock", "api_key": ..., "base_url": ..., "timeout": ..., "mock": bool}
    """
    provider = (settings.get("provider") or "").lower()

    if settings.get("mock") or provider == "mock":
        return MockProvider()

    if provider == "shippo":
        if not settings.get("api_key"):
            raise ConfigError("Missing Shippo api key (SHIPPO_API_KEY or app-config shippo_api_key)")
        return ShippoProvider(
            settings["api_key"],
            base_url=settings.get("base_url") or "https://api.goshippo.com",
            timeout=settings.get("timeout") or 30,
        )

    raise ConfigError(f"Unsupported shipping provider: {provider or '<missing>'}")
