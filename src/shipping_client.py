# shipping_client.py
# Marketplace-side client for the shipping API (rates and labels for a
# listing). Raises ShippingClientError whenever the API answers success=false.

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"


class ShippingClientError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ShippingClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Shipping API {path} request failed: {e}")
            raise ShippingClientError(str(e))

        try:
            data = response.json()
        except ValueError:
            raise ShippingClientError(
                f"Shipping API returned a non-JSON response ({response.status_code})",
                status_code=response.status_code,
            )

        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            details = data.get("details") if isinstance(data, dict) else None
            logger.error(f"Shipping API {path} error: {error}")
            raise ShippingClientError(error or "Shipping request failed",
                                      status_code=response.status_code, details=details)
        return data

    def package_sizes(self) -> List[Dict[str, Any]]:
        return self._call("GET", "/api/package-sizes")["sizes"]

    def get_shipping_rates(self, package_size: str, seller_zip: str, buyer_zip: str,
                           declared_value: Any) -> Dict[str, Any]:
        return self._call("POST", "/api/get-shipping-rate", {
            "package_size": package_size,
            "seller_zip": seller_zip,
            "buyer_zip": buyer_zip,
            "declared_value": declared_value,
        })

    def create_shipping_label(self, rate_id: str, seller_email: str, declared_value: Any) -> Dict[str, Any]:
        return self._call("POST", "/api/create-label", {
            "rate_id": rate_id,
            "seller_email": seller_email,
            "declared_value": declared_value,
        })
